import csv
import io
import logging
from collections import Counter, OrderedDict
from typing import Any, Callable, Dict, List, Optional

from legalpro.case_utils import format_case_status
from legalpro.services.auth import AuthService
from legalpro_lib.database import Database, parse_timestamp
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)


def _percentage(count: int, total: int) -> int:
    return round(count / total * 100) if total else 0


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    if not rows:
        return ''
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), extrasaction='ignore')
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


class ReportService:
    """Admin reports over a created_at date range, optionally narrowed to one lawyer."""

    def __init__(self, database: Database, auth: AuthService):
        self.db = database
        self.auth = auth
        self.reports: Dict[str, Callable[..., List[Dict[str, Any]]]] = {
            'payments': self.payments,
            'revenue': self.revenue,
            'case-status': self.case_status,
            'case-type': self.case_type,
            'proposals': self.proposals,
            'consultations': self.consultations,
        }

    def _rows(self, table: str, columns: str, date_from: str, date_to: str,
              lawyer_column: str, lawyer_id: Optional[str], **filters) -> List[Dict[str, Any]]:
        if lawyer_id:
            filters[lawyer_column] = lawyer_id
        return self.db.fetch_all(
            table,
            filters,
            columns=columns,
            gte={'created_at': date_from},
            lte={'created_at': date_to}
        )

    def payments(self, date_from: str, date_to: str, lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = self._rows('money_requests', '*', date_from, date_to, 'lawyer_id', lawyer_id)
        return [
            {
                'id': row.get('id'),
                'amount': row.get('amount'),
                'currency': row.get('currency'),
                'status': row.get('status'),
                'case_id': row.get('case_id'),
                'created_at': row.get('created_at')
            }
            for row in rows
        ]

    def revenue(self, date_from: str, date_to: str, lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = self._rows(
            'money_requests', 'case_id, amount, currency, status, created_at',
            date_from, date_to, 'lawyer_id', lawyer_id, status='paid'
        )
        by_case: Dict[str, Dict[str, Any]] = OrderedDict()
        for row in rows:
            entry = by_case.setdefault(row.get('case_id'), {
                'case_id': row.get('case_id'),
                'total_revenue': 0,
                'currency': row.get('currency'),
                'created_at': row.get('created_at')
            })
            entry['total_revenue'] += row.get('amount') or 0
        return sorted(by_case.values(), key=lambda entry: entry['total_revenue'], reverse=True)

    def _distribution(self, column: str, default: str, date_from: str, date_to: str,
                      lawyer_id: Optional[str]) -> List[Dict[str, Any]]:
        rows = self._rows('cases', column, date_from, date_to, 'assigned_lawyer_id', lawyer_id)
        counts = Counter(row.get(column) or default for row in rows)
        return [
            {column: value, 'count': count, 'percentage': _percentage(count, len(rows))}
            for value, count in counts.items()
        ]

    def case_status(self, date_from: str, date_to: str, lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._distribution('status', 'unknown', date_from, date_to, lawyer_id)
        for entry in data:
            entry['label'] = format_case_status(entry['status'])
        return data

    def case_type(self, date_from: str, date_to: str, lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._distribution('category', 'other', date_from, date_to, lawyer_id)
        return sorted(data, key=lambda entry: entry['count'], reverse=True)

    def proposals(self, date_from: str, date_to: str, lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = self._rows(
            'additional_fee_requests', 'lawyer_id, status, created_at',
            date_from, date_to, 'lawyer_id', lawyer_id
        )
        by_lawyer: Dict[str, Dict[str, int]] = OrderedDict()
        for row in rows:
            stats = by_lawyer.setdefault(row.get('lawyer_id'), {'sent': 0, 'accepted': 0})
            stats['sent'] += 1
            if row.get('status') == 'accepted':
                stats['accepted'] += 1
        return [
            {
                'lawyer_id': lawyer,
                'sent_count': stats['sent'],
                'accepted_count': stats['accepted'],
                'acceptance_rate': _percentage(stats['accepted'], stats['sent'])
            }
            for lawyer, stats in by_lawyer.items()
        ]

    def consultations(self, date_from: str, date_to: str, lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = self._rows('appointments', '*', date_from, date_to, 'lawyer_id', lawyer_id)
        by_day: Dict[str, Dict[str, int]] = {}
        for row in rows:
            created = parse_timestamp(row.get('created_at'))
            if created is None:
                continue
            day = by_day.setdefault(created.date().isoformat(), {'booked': 0, 'completed': 0, 'missed': 0})
            day['booked'] += 1
            if row.get('status') == 'completed':
                day['completed'] += 1
            elif row.get('status') == 'cancelled':
                day['missed'] += 1
        return [
            {**stats, 'date': date, 'completion_rate': _percentage(stats['completed'], stats['booked'])}
            for date, stats in sorted(by_day.items())
        ]

    async def run(self, caller_id: str, report: str, date_from: Optional[str], date_to: Optional[str],
                  lawyer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        self.auth.require_admin(caller_id)
        if report not in self.reports:
            raise AppError(f"Unknown report: {report}", status_code=404)
        if not date_from or not date_to:
            raise AppError("from and to dates are required", status_code=400)

        rows = self.reports[report](date_from, date_to, lawyer_id)
        logger.info(f"Report {report} produced {len(rows)} rows for admin {caller_id}")
        return rows

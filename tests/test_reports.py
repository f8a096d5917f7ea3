import csv
import io

import pytest

from legalpro.services.auth import AuthService
from legalpro.services.reports import ReportService, rows_to_csv
from legalpro_lib.error_handler import AppError

FROM = '2024-01-01T00:00:00+00:00'
TO = '2024-01-31T23:59:59+00:00'


@pytest.fixture
def service(fake_db, database):
    fake_db.seed('profiles', {'user_id': 'admin-1', 'role': 'admin'})
    return ReportService(database, AuthService(fake_db, database))


async def test_revenue_sums_paid_requests_per_case(service, fake_db):
    fake_db.seed('money_requests',
                 {'case_id': 'c1', 'amount': 100, 'currency': 'EGP', 'status': 'paid', 'lawyer_id': 'l1', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'case_id': 'c1', 'amount': 50, 'currency': 'EGP', 'status': 'paid', 'lawyer_id': 'l1', 'created_at': '2024-01-03T00:00:00+00:00'},
                 {'case_id': 'c2', 'amount': 400, 'currency': 'EGP', 'status': 'paid', 'lawyer_id': 'l2', 'created_at': '2024-01-04T00:00:00+00:00'},
                 {'case_id': 'c3', 'amount': 999, 'currency': 'EGP', 'status': 'pending', 'lawyer_id': 'l1', 'created_at': '2024-01-04T00:00:00+00:00'},
                 {'case_id': 'c4', 'amount': 999, 'currency': 'EGP', 'status': 'paid', 'lawyer_id': 'l1', 'created_at': '2024-02-04T00:00:00+00:00'})

    rows = await service.run('admin-1', 'revenue', FROM, TO)
    assert [(r['case_id'], r['total_revenue']) for r in rows] == [('c2', 400), ('c1', 150)]

    rows = await service.run('admin-1', 'revenue', FROM, TO, lawyer_id='l1')
    assert [(r['case_id'], r['total_revenue']) for r in rows] == [('c1', 150)]


async def test_case_status_distribution(service, fake_db):
    fake_db.seed('cases',
                 {'status': 'completed', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'status': 'completed', 'created_at': '2024-01-03T00:00:00+00:00'},
                 {'status': None, 'created_at': '2024-01-04T00:00:00+00:00'})

    rows = await service.run('admin-1', 'case-status', FROM, TO)

    assert {r['status']: (r['count'], r['percentage']) for r in rows} == {'completed': (2, 67), 'unknown': (1, 33)}
    assert {r['status']: r['label'] for r in rows} == {'completed': 'Completed', 'unknown': 'Unknown'}


async def test_case_type_sorted_by_count(service, fake_db):
    fake_db.seed('cases',
                 {'category': 'Property', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'category': 'Family Law', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'category': 'Family Law', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'category': None, 'created_at': '2024-01-02T00:00:00+00:00'})

    rows = await service.run('admin-1', 'case-type', FROM, TO)

    assert rows[0] == {'category': 'Family Law', 'count': 2, 'percentage': 50}
    assert {r['category'] for r in rows[1:]} == {'Property', 'other'}


async def test_proposals_acceptance_rate(service, fake_db):
    fake_db.seed('additional_fee_requests',
                 {'lawyer_id': 'l1', 'status': 'accepted', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'lawyer_id': 'l1', 'status': 'rejected', 'created_at': '2024-01-02T00:00:00+00:00'},
                 {'lawyer_id': 'l1', 'status': 'pending', 'created_at': '2024-01-02T00:00:00+00:00'})

    rows = await service.run('admin-1', 'proposals', FROM, TO)

    assert rows == [{'lawyer_id': 'l1', 'sent_count': 3, 'accepted_count': 1, 'acceptance_rate': 33}]


async def test_consultations_by_day(service, fake_db):
    fake_db.seed('appointments',
                 {'status': 'completed', 'created_at': '2024-01-05T09:00:00+00:00'},
                 {'status': 'cancelled', 'created_at': '2024-01-05T15:00:00+00:00'},
                 {'status': 'scheduled', 'created_at': '2024-01-02T10:00:00+00:00'})

    rows = await service.run('admin-1', 'consultations', FROM, TO)

    assert rows == [
        {'date': '2024-01-02', 'booked': 1, 'completed': 0, 'missed': 0, 'completion_rate': 0},
        {'date': '2024-01-05', 'booked': 2, 'completed': 1, 'missed': 1, 'completion_rate': 50},
    ]


async def test_payments_report(service, fake_db):
    fake_db.seed('money_requests', {'id': 'm1', 'amount': 10, 'currency': 'EGP', 'status': 'paid',
                                    'case_id': 'c1', 'created_at': '2024-01-02T00:00:00+00:00', 'notes': 'x'})
    rows = await service.run('admin-1', 'payments', FROM, TO)
    assert rows == [{'id': 'm1', 'amount': 10, 'currency': 'EGP', 'status': 'paid', 'case_id': 'c1',
                     'created_at': '2024-01-02T00:00:00+00:00'}]


async def test_report_errors(service, fake_db):
    with pytest.raises(AppError) as exc:
        await service.run('admin-1', 'profit', FROM, TO)
    assert exc.value.status_code == 404

    with pytest.raises(AppError) as exc:
        await service.run('admin-1', 'revenue', None, TO)
    assert exc.value.status_code == 400

    fake_db.seed('profiles', {'user_id': 'lawyer-1', 'role': 'lawyer'})
    with pytest.raises(AppError) as exc:
        await service.run('lawyer-1', 'revenue', FROM, TO)
    assert exc.value.status_code == 403


def test_rows_to_csv():
    text = rows_to_csv([{'date': '2024-01-02', 'booked': 1}, {'date': '2024-01-03', 'booked': 4}])
    assert list(csv.DictReader(io.StringIO(text))) == [
        {'date': '2024-01-02', 'booked': '1'},
        {'date': '2024-01-03', 'booked': '4'},
    ]
    assert rows_to_csv([]) == ''

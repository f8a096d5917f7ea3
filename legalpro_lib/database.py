from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import logging

from supabase import create_client, Client

from legalpro_lib.config import get_settings
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)


def create_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return utc_now().isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Postgres timestamp string, treating naive values as UTC"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def seconds_since(value: Optional[str], until: Optional[datetime] = None) -> Optional[int]:
    started = parse_timestamp(value)
    if started is None:
        return None
    return int(((until or utc_now()) - started).total_seconds())


class Database:
    """Thin wrapper over the Supabase table API.

    Filters are passed as a dict: a list value becomes an ``in`` filter and
    ``None`` becomes ``is null``. Every failure is raised as ``AppError``.
    """

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        for column, value in (filters or {}).items():
            if value is None:
                query = query.is_(column, 'null')
            elif isinstance(value, (list, tuple, set)):
                query = query.in_(column, list(value))
            else:
                query = query.eq(column, value)
        return query

    def fetch_one(
        self,
        table: str,
        filters: Dict[str, Any],
        columns: str = '*',
        order_by: Optional[str] = None,
        desc: bool = False
    ) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(table, filters, columns=columns, order_by=order_by, desc=desc, limit=1)
        return rows[0] if rows else None

    def fetch_all(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = '*',
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
        gte: Optional[Dict[str, Any]] = None,
        lte: Optional[Dict[str, Any]] = None,
        lt: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        try:
            query = self._apply_filters(self.supabase.table(table).select(columns), filters)
            for column, value in (gte or {}).items():
                query = query.gte(column, value)
            for column, value in (lte or {}).items():
                query = query.lte(column, value)
            for column, value in (lt or {}).items():
                query = query.lt(column, value)
            if order_by:
                query = query.order(order_by, desc=desc)
            if limit:
                query = query.limit(limit)
            result = query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to read from {table}: {str(e)}")
            raise AppError(f"Database read error on {table}: {str(e)}")

    def insert(self, table: str, rows: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table(table).insert(rows).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to insert into {table}: {str(e)}")
            raise AppError(f"Database insert error on {table}: {str(e)}")

    def insert_one(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self.insert(table, row)
        return rows[0] if rows else row

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            query = self._apply_filters(self.supabase.table(table).update(values), filters)
            result = query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to update {table}: {str(e)}")
            raise AppError(f"Database update error on {table}: {str(e)}")

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            if on_conflict:
                result = self.supabase.table(table).upsert(row, on_conflict=on_conflict).execute()
            else:
                result = self.supabase.table(table).upsert(row).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to upsert into {table}: {str(e)}")
            raise AppError(f"Database upsert error on {table}: {str(e)}")

    def delete(self, table: str, filters: Dict[str, Any], lt: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        try:
            query = self._apply_filters(self.supabase.table(table).delete(), filters)
            for column, value in (lt or {}).items():
                query = query.lt(column, value)
            result = query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to delete from {table}: {str(e)}")
            raise AppError(f"Database delete error on {table}: {str(e)}")

    def rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            result = self.supabase.rpc(function_name, params or {}).execute()
            return result.data
        except Exception as e:
            logger.error(f"RPC {function_name} failed: {str(e)}")
            raise AppError(f"Database function {function_name} failed: {str(e)}")

    def create_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> Optional[str]:
        try:
            data = self.supabase.storage.from_(bucket).create_signed_url(path, expires_in)
        except Exception as e:
            logger.error(f"Failed to sign {bucket}/{path}: {str(e)}")
            return None
        return data.get('signedURL') or data.get('signedUrl')

    def remove_file(self, bucket: str, path: str) -> None:
        try:
            self.supabase.storage.from_(bucket).remove([path])
        except Exception as e:
            raise AppError(f"Storage delete error on {bucket}/{path}: {str(e)}")

import logging
from typing import Any, Dict, List, Union

from legalpro_lib.database import Database
from legalpro_lib.error_handler import ErrorHandler

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, database: Database):
        self.db = database
        self.table = 'notifications'

    def notify(self, notifications: Union[Dict[str, Any], List[Dict[str, Any]]]) -> bool:
        """Insert in-app notifications; a failure is logged and reported as False"""
        rows = [notifications] if isinstance(notifications, dict) else notifications
        if not rows:
            return True
        try:
            self.db.insert(self.table, rows)
            logger.info(f"Created {len(rows)} notification(s) of type {rows[0].get('type')}")
            return True
        except Exception as e:
            ErrorHandler.handle_side_effect_error('create notifications', e)
            return False

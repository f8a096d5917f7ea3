from typing import Any, Dict, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class AppError(Exception):
    def __init__(self, message: str, status_code: int = 500, user_message: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        if user_message is None:
            user_message = message if status_code < 500 else "Internal server error"
        self.user_message = user_message
        super().__init__(self.message)


class ErrorHandler:
    @staticmethod
    def handle_app_error(error: AppError) -> Tuple[Dict[str, Any], int]:
        if error.status_code >= 500:
            logger.error(f"Application error: {error.message}")
        else:
            logger.warning(f"Request rejected ({error.status_code}): {error.message}")
        return {'error': error.user_message}, error.status_code

    @staticmethod
    def handle_unexpected_error(error: Exception) -> Tuple[Dict[str, Any], int]:
        logger.error(f"Unexpected error: {str(error)}", exc_info=True)
        return {'error': 'Internal server error'}, 500

    @staticmethod
    def handle_side_effect_error(action: str, error: Exception) -> None:
        """Log a failed best-effort step without interrupting the request"""
        logger.error(f"Failed to {action}: {str(error)}")

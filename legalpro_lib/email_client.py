from typing import Any, Dict, List, Optional, Union
import logging

import requests

from legalpro_lib.config import get_settings
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)


class EmailClient:
    """Sends transactional email through the Resend REST API."""

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key or settings.resend_api_key
        self.api_url = settings.resend_api_url
        self.sender = sender or settings.email_from

    def send(self, to: Union[str, List[str]], subject: str, html: str) -> Dict[str, Any]:
        recipients = [to] if isinstance(to, str) else list(to)
        try:
            response = requests.post(
                self.api_url,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json'
                },
                json={
                    'from': self.sender,
                    'to': recipients,
                    'subject': subject,
                    'html': html
                },
                timeout=30
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send email '{subject}' to {recipients}: {str(e)}")
            raise AppError(f"Failed to send email: {str(e)}")

        logger.info(f"Email '{subject}' sent to {recipients}")
        return response.json()

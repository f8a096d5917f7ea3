import logging
from typing import Optional

from legalpro_lib.database import Database
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)


class AuthService:
    """Resolves the calling user from a Supabase access token."""

    def __init__(self, supabase_client, database: Database):
        self.supabase = supabase_client
        self.db = database

    def get_user_id(self, authorization: Optional[str]) -> str:
        if not authorization or not authorization.startswith('Bearer '):
            raise AppError("Missing bearer token", status_code=401, user_message="Unauthorized")

        token = authorization[len('Bearer '):].strip()
        try:
            response = self.supabase.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {str(e)}")
            raise AppError("Invalid token", status_code=401, user_message="Unauthorized")

        user = getattr(response, 'user', None)
        if user is None:
            raise AppError("Token has no user", status_code=401, user_message="Unauthorized")
        return user.id

    def get_role(self, user_id: str) -> Optional[str]:
        profile = self.db.fetch_one('profiles', {'user_id': user_id}, columns='role')
        return profile.get('role') if profile else None

    def require_admin(self, user_id: str) -> None:
        if self.get_role(user_id) != 'admin':
            raise AppError(f"User {user_id} is not an admin", status_code=403, user_message="Admin access required")

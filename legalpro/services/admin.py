import logging
from typing import Any, Dict, Optional, Tuple

from legalpro.services.auth import AuthService
from legalpro_lib.database import Database
from legalpro_lib.error_handler import AppError, ErrorHandler

logger = logging.getLogger(__name__)

PUBLIC_STORAGE_MARKER = '/storage/v1/object/public/'
PROFILE_FILE_COLUMNS = 'lawyer_card_front_url, lawyer_card_back_url, profile_picture_url, credentials_documents'


def storage_location(file_url: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split a public storage URL into (bucket, path)"""
    if not file_url or PUBLIC_STORAGE_MARKER not in file_url:
        return None
    bucket, _, path = file_url.split(PUBLIC_STORAGE_MARKER, 1)[1].partition('/')
    if not bucket or not path:
        return None
    return bucket, path


class AdminService:
    def __init__(self, supabase_client, database: Database, auth: AuthService):
        self.supabase = supabase_client
        self.db = database
        self.auth = auth

    def _remove_profile_files(self, lawyer_id: str) -> None:
        profile = self.db.fetch_one('profiles', {'id': lawyer_id}, columns=PROFILE_FILE_COLUMNS)
        if not profile:
            return

        urls = [
            profile.get('lawyer_card_front_url'),
            profile.get('lawyer_card_back_url'),
            profile.get('profile_picture_url'),
            *(profile.get('credentials_documents') or [])
        ]
        for url in urls:
            location = storage_location(url)
            if not location:
                continue
            bucket, path = location
            try:
                self.db.remove_file(bucket, path)
            except AppError as e:
                ErrorHandler.handle_side_effect_error(f"delete file {bucket}/{path}", e)

    async def delete_lawyer(self, caller_id: str, lawyer_id: str, email: str) -> Dict[str, Any]:
        """Remove a lawyer's requests, files, conversations, assignments, profile and auth user"""
        self.auth.require_admin(caller_id)
        if not lawyer_id or not email:
            raise AppError("lawyerId and email are required", status_code=400)

        logger.info(f"Admin {caller_id} deleting lawyer {lawyer_id} ({email})")

        try:
            self.db.delete('lawyer_requests', {'email': email})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"delete lawyer requests for {email}", e)

        try:
            self._remove_profile_files(lawyer_id)
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"load stored files of {lawyer_id}", e)

        try:
            self.db.delete('conversations', {'lawyer_id': lawyer_id})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"delete conversations of {lawyer_id}", e)

        try:
            self.db.update('cases', {'assigned_lawyer_id': None}, {'assigned_lawyer_id': lawyer_id})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"unassign cases of {lawyer_id}", e)

        try:
            self.db.delete('profiles', {'id': lawyer_id})
        except AppError as e:
            raise AppError(f"Failed to delete profile: {e.message}")

        try:
            self.supabase.auth.admin.delete_user(lawyer_id)
        except Exception as e:
            ErrorHandler.handle_side_effect_error(f"delete auth user {lawyer_id}", e)

        return {'success': True, 'message': f"Lawyer {email} has been completely removed from the system"}

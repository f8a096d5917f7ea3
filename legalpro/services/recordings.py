import logging
from typing import Any, Dict, List, Optional

from legalpro.case_utils import is_case_party
from legalpro_lib.config import get_settings
from legalpro_lib.database import Database
from legalpro_lib.error_handler import AppError
from legalpro_lib.twilio_client import TwilioClient

logger = logging.getLogger(__name__)

SIGNED_URL_TTL = 3600


class RecordingService:
    def __init__(self, database: Database, twilio_client: TwilioClient):
        self.db = database
        self.twilio = twilio_client
        self.bucket = get_settings().recordings_bucket
        self.recordings_table = 'twilio_session_recordings'

    def _session_with_case(self, session_id: str) -> Optional[Dict[str, Any]]:
        session = self.db.fetch_one('communication_sessions', {'id': session_id})
        if not session:
            return None
        case = self.db.fetch_one(
            'cases',
            {'id': session.get('case_id')},
            columns='id, user_id, assigned_lawyer_id, case_number, title'
        )
        session['cases'] = case or {}
        return session

    async def manage_recording(self, user_id: str, session_id: str, action: str) -> Dict[str, Any]:
        if not session_id:
            raise AppError("sessionId is required", status_code=400)

        session = self._session_with_case(session_id)
        if not session or not session['cases']:
            raise AppError("Session not found", status_code=404)
        if not is_case_party(session['cases'], user_id):
            raise AppError("Unauthorized", status_code=403)
        if action not in ('start', 'stop'):
            raise AppError(f"Invalid action: {action}", status_code=400)

        room_sid = session.get('twilio_room_sid')
        if not room_sid:
            raise AppError("Room not active", status_code=400)

        if action == 'start':
            self.twilio.start_recording(room_sid)
        else:
            self.twilio.stop_recording(room_sid)

        self.db.update('communication_sessions', {'recording_enabled': action == 'start'}, {'id': session_id})
        logger.info(f"Recording {action} for session {session_id} by {user_id}")
        return {
            'success': True,
            'message': 'Recording started' if action == 'start' else 'Recording stopped'
        }

    def _attach_sessions(self, recordings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        sessions: Dict[str, Optional[Dict[str, Any]]] = {}
        for recording in recordings:
            session_id = recording.get('communication_session_id')
            if session_id not in sessions:
                sessions[session_id] = self._session_with_case(session_id)
            recording['communication_sessions'] = sessions[session_id]
        return [recording for recording in recordings if recording['communication_sessions']]

    def _visible_to(self, recording: Dict[str, Any], user_id: str) -> bool:
        return is_case_party(recording['communication_sessions'].get('cases') or {}, user_id)

    def _signed_url(self, recording: Dict[str, Any]) -> Optional[str]:
        if recording.get('file_path'):
            signed = self.db.create_signed_url(self.bucket, recording['file_path'], SIGNED_URL_TTL)
            if signed:
                return signed
        return recording.get('recording_url')

    async def get_recordings(
        self,
        user_id: str,
        recording_id: Optional[str] = None,
        session_id: Optional[str] = None,
        case_id: Optional[str] = None
    ):
        """Return one recording (with a signed URL) or the recordings the user may see"""
        if recording_id:
            recording = self.db.fetch_one(self.recordings_table, {'id': recording_id})
            attached = self._attach_sessions([recording]) if recording else []
            if not attached:
                raise AppError("Recording not found", status_code=404)
            recording = attached[0]
            if not self._visible_to(recording, user_id):
                raise AppError("Unauthorized", status_code=403)
            return {**recording, 'signed_url': self._signed_url(recording)}

        if session_id:
            recordings = self.db.fetch_all(
                self.recordings_table,
                {'communication_session_id': session_id},
                order_by='created_at',
                desc=True
            )
        else:
            if case_id:
                sessions = self.db.fetch_all('communication_sessions', {'case_id': case_id}, columns='id')
            else:
                sessions = (
                    self.db.fetch_all('communication_sessions', {'client_id': user_id}, columns='id')
                    + self.db.fetch_all('communication_sessions', {'lawyer_id': user_id}, columns='id')
                )
            session_ids = sorted({session['id'] for session in sessions})
            if not session_ids:
                return []
            recordings = self.db.fetch_all(
                self.recordings_table,
                {'communication_session_id': session_ids},
                order_by='created_at',
                desc=True
            )

        attached = self._attach_sessions(recordings)
        if not (session_id or case_id):
            # Already limited to sessions the user took part in
            return attached
        return [recording for recording in attached if self._visible_to(recording, user_id)]

import logging
import time
from datetime import timedelta
from typing import Any, Dict, Optional

from legalpro.case_utils import is_case_party
from legalpro_lib.database import Database, now_iso, seconds_since, utc_now
from legalpro_lib.error_handler import AppError, ErrorHandler
from legalpro_lib.twilio_client import TwilioClient

logger = logging.getLogger(__name__)

SESSION_TYPES = ('video', 'voice', 'chat')
SESSION_STATUSES = ('active', 'ended', 'failed', 'scheduled')


def parse_identity(identity: str):
    """Split a "<role>-<user_id>" identity; user ids contain dashes themselves"""
    role, _, user_id = (identity or '').partition('-')
    return role, (user_id or None)


def _as_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value not in (None, '') else None
    except (TypeError, ValueError):
        return None


class SessionService:
    """Mirrors Twilio room state into communication_sessions and issues access tokens."""

    def __init__(self, database: Database, twilio_client: TwilioClient):
        self.db = database
        self.twilio = twilio_client
        self.sessions_table = 'communication_sessions'
        self.participants_table = 'twilio_session_participants'
        self.recordings_table = 'twilio_session_recordings'
        self._handlers = {
            'room-created': self._room_created,
            'room-ended': self._room_ended,
            'participant-connected': self._participant_connected,
            'participant-disconnected': self._participant_disconnected,
            'recording-started': self._recording_started,
            'recording-completed': self._recording_completed,
        }

    async def handle_webhook(self, form: Dict[str, str]) -> None:
        event = form.get('StatusCallbackEvent')
        logger.info(f"Twilio webhook {event} for room {form.get('RoomName')} ({form.get('RoomSid')})")

        handler = self._handlers.get(event)
        if handler is None:
            logger.info(f"Ignoring unhandled Twilio event: {event}")
            return
        await handler(form)

    def _require_field(self, form: Dict[str, str], field: str) -> Optional[str]:
        # A missing key would otherwise become an IS NULL filter and match unrelated rows
        value = form.get(field)
        if not value:
            logger.warning(f"Ignoring {form.get('StatusCallbackEvent')} callback without {field}")
            return None
        return value

    async def _room_created(self, form: Dict[str, str]) -> None:
        if not self._require_field(form, 'RoomName'):
            return
        room_sid = form.get('RoomSid')
        updated = self.db.update(
            self.sessions_table,
            {'twilio_room_sid': room_sid, 'started_at': now_iso(), 'status': 'active'},
            {'room_name': form.get('RoomName')}
        )
        if not updated:
            logger.warning(f"No session found for created room {form.get('RoomName')}")
            return

        if updated[0].get('recording_enabled') and room_sid:
            try:
                self.twilio.start_recording(room_sid)
            except Exception as e:
                ErrorHandler.handle_side_effect_error(f"start recording for room {room_sid}", e)

    async def _room_ended(self, form: Dict[str, str]) -> None:
        room_sid = self._require_field(form, 'RoomSid')
        if not room_sid:
            return
        session = self.db.fetch_one(self.sessions_table, {'twilio_room_sid': room_sid})
        if not session:
            logger.warning(f"No session found for ended room {form.get('RoomSid')}")
            return

        self.db.update(
            self.sessions_table,
            {
                'ended_at': now_iso(),
                'duration_seconds': seconds_since(session.get('started_at')),
                'status': 'ended'
            },
            {'id': session['id']}
        )
        logger.info(f"Session {session['id']} ended")

    async def _participant_connected(self, form: Dict[str, str]) -> None:
        room_name = self._require_field(form, 'RoomName')
        identity = self._require_field(form, 'ParticipantIdentity')
        if not (room_name and identity):
            return
        session = self.db.fetch_one(self.sessions_table, {'room_name': room_name})
        if not session:
            logger.error(f"Participant connected to unknown room {room_name}")
            return

        role, user_id = parse_identity(identity)
        self.db.insert(self.participants_table, {
            'communication_session_id': session['id'],
            'user_id': user_id,
            'participant_identity': identity,
            'participant_sid': form.get('ParticipantSid'),
            'role': role,
            'joined_at': now_iso()
        })

        present = self.db.fetch_all(
            self.participants_table,
            {'communication_session_id': session['id'], 'left_at': None},
            columns='role'
        )
        roles = {participant.get('role') for participant in present}
        if {'client', 'lawyer'} <= roles:
            self.db.update(
                self.sessions_table,
                {'status': 'active', 'started_at': now_iso()},
                {'id': session['id']}
            )
            logger.info(f"Both parties present, session {session['id']} is active")

    async def _participant_disconnected(self, form: Dict[str, str]) -> None:
        participant = None
        if form.get('ParticipantSid'):
            participant = self.db.fetch_one(
                self.participants_table,
                {'participant_sid': form['ParticipantSid'], 'left_at': None}
            )
        if participant is None and form.get('ParticipantIdentity'):
            participant = self.db.fetch_one(
                self.participants_table,
                {'participant_identity': form.get('ParticipantIdentity'), 'left_at': None},
                order_by='joined_at',
                desc=True
            )
        if participant is None:
            logger.warning(f"No open participant record for {form.get('ParticipantIdentity')}")
            return

        self.db.update(
            self.participants_table,
            {'left_at': now_iso(), 'duration_seconds': seconds_since(participant.get('joined_at'))},
            {'id': participant['id']}
        )

        session_id = participant['communication_session_id']
        remaining = self.db.fetch_all(
            self.participants_table,
            {'communication_session_id': session_id, 'left_at': None},
            columns='id'
        )
        if not remaining:
            self.db.update(
                self.sessions_table,
                {'status': 'ended', 'ended_at': now_iso()},
                {'id': session_id}
            )
            logger.info(f"Last participant left, session {session_id} ended")

    async def _recording_started(self, form: Dict[str, str]) -> None:
        room_sid = self._require_field(form, 'RoomSid')
        if not (room_sid and self._require_field(form, 'RecordingSid')):
            return
        session = self.db.fetch_one(self.sessions_table, {'twilio_room_sid': room_sid})
        if not session:
            logger.error(f"Recording started in unknown room {room_sid}")
            return

        self.db.insert(self.recordings_table, {
            'communication_session_id': session['id'],
            'twilio_recording_sid': form['RecordingSid'],
            'status': 'processing',
            'started_at': now_iso()
        })

    async def _recording_completed(self, form: Dict[str, str]) -> None:
        recording_sid = self._require_field(form, 'RecordingSid')
        if not recording_sid:
            return
        self.db.update(
            self.recordings_table,
            {
                'recording_url': form.get('MediaUrl') or form.get('MediaUri'),
                'duration_seconds': _as_int(form.get('RecordingDuration')),
                'file_size': _as_int(form.get('RecordingSize')),
                'status': 'completed',
                'completed_at': now_iso()
            },
            {'twilio_recording_sid': recording_sid}
        )

    async def create_access_token(
        self,
        user_id: str,
        case_id: str,
        session_type: str,
        participant_role: str,
        session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        if not case_id or not participant_role:
            raise AppError("caseId and participantRole are required", status_code=400)
        if session_type not in SESSION_TYPES:
            raise AppError(f"Invalid session type: {session_type}", status_code=400)

        case = self.db.fetch_one('cases', {'id': case_id})
        if not case:
            raise AppError("Case not found", status_code=404)
        if not is_case_party(case, user_id):
            raise AppError("Unauthorized for this case", status_code=403)

        conversation_sid = f"case-{case_id}-chat" if session_type == 'chat' else None

        if session_id:
            session = self.db.fetch_one(self.sessions_table, {'id': session_id})
            if not session:
                raise AppError("Session not found", status_code=404)
            if user_id not in (session.get('client_id'), session.get('lawyer_id')):
                raise AppError("Not a participant of this session", status_code=403)
        else:
            session = self.db.fetch_one(
                self.sessions_table,
                {'case_id': case_id, 'status': 'scheduled'},
                order_by='created_at',
                desc=True
            )

        if session is None:
            session = self.db.insert_one(self.sessions_table, {
                'case_id': case_id,
                'client_id': case.get('user_id'),
                'lawyer_id': case.get('assigned_lawyer_id'),
                'session_type': session_type,
                'room_name': self._room_name(case_id, session_type),
                'twilio_conversation_sid': conversation_sid,
                'status': 'scheduled',
                'scheduled_at': now_iso(),
                'recording_enabled': True,
                'recording_consent_client': True,
                'recording_consent_lawyer': True,
                'initiated_by': user_id
            })
            logger.info(f"Created {session_type} session {session['id']} for case {case_id}")
        elif not session.get('room_name'):
            session['room_name'] = self._room_name(case_id, session_type)
            self.db.update(
                self.sessions_table,
                {'room_name': session['room_name'], 'twilio_conversation_sid': conversation_sid},
                {'id': session['id']}
            )

        room_name = session['room_name']
        identity = f"{participant_role}-{user_id}"
        access_token = self.twilio.create_access_token(
            identity,
            session_type,
            room_name=room_name,
            conversation_sid=conversation_sid
        )

        if session.get('twilio_room_sid') and session.get('recording_enabled', True):
            try:
                self.twilio.start_recording(session['twilio_room_sid'])
                self.db.update(self.sessions_table, {'recording_enabled': True}, {'id': session['id']})
            except Exception as e:
                ErrorHandler.handle_side_effect_error(f"auto-start recording for session {session['id']}", e)

        return {
            'accessToken': access_token,
            'roomName': room_name,
            'sessionId': session['id'],
            'identity': identity
        }

    def _room_name(self, case_id: str, session_type: str) -> str:
        return f"case-{case_id}-{session_type}-{int(time.time() * 1000)}"

    async def end_session(self, session_id: str) -> Dict[str, Any]:
        """Emergency cleanup: end one session if it is still active"""
        updated = self.db.update(
            self.sessions_table,
            {'status': 'ended', 'ended_at': now_iso()},
            {'id': session_id, 'status': 'active'}
        )
        logger.info(f"Emergency cleanup for session {session_id}: {len(updated)} row(s) ended")
        return {'success': True, 'message': 'Session cleaned up successfully'}

    async def cleanup_stale_sessions(self) -> Dict[str, Any]:
        self.db.rpc('cleanup_stale_communication_sessions')
        logger.info("Stale communication sessions cleaned up")
        return {'success': True, 'message': 'Stale sessions cleaned up successfully'}

    async def scheduled_cleanup(self) -> Dict[str, Any]:
        self.db.rpc('cleanup_stale_communication_sessions')

        now = utc_now()
        recent = self.db.fetch_all(
            self.sessions_table,
            columns='status',
            gte={'created_at': (now - timedelta(hours=24)).isoformat()}
        )
        stats = {'total': len(recent)}
        for status in SESSION_STATUSES:
            stats[status] = sum(1 for session in recent if session.get('status') == status)
        logger.info(f"Session stats for the last 24h: {stats}")

        try:
            self.db.delete(
                self.recordings_table,
                {'status': 'completed'},
                lt={'created_at': (now - timedelta(days=30)).isoformat()}
            )
        except AppError as e:
            logger.warning(f"Failed to prune old recordings: {e.message}")

        return {
            'success': True,
            'message': 'Scheduled cleanup completed',
            'stats': stats,
            'timestamp': now.isoformat()
        }

    async def log_chat_message(
        self,
        user_id: str,
        session_id: str,
        case_id: str,
        role: str,
        content: str,
        message_type: str = 'text'
    ) -> Dict[str, Any]:
        if not (session_id and case_id and role and content):
            raise AppError("sessionId, caseId, role and content are required", status_code=400)

        case = self.db.fetch_one('cases', {'id': case_id}, columns='id, user_id, assigned_lawyer_id')
        if not case:
            raise AppError("Case not found", status_code=404)
        if not is_case_party(case, user_id):
            raise AppError("Unauthorized for this case", status_code=403)

        message = self.db.insert_one('case_messages', {
            'case_id': case_id,
            'role': role,
            'content': content,
            'message_type': message_type,
            'metadata': {
                'session_id': session_id,
                'timestamp': now_iso(),
                'user_id': user_id,
                'auto_logged': True
            }
        })
        logger.info(f"Logged {role} message {message.get('id')} for case {case_id}")
        return {
            'success': True,
            'messageId': message.get('id'),
            'message': 'Chat message logged for admin review'
        }

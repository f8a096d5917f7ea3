from typing import Dict, Optional
import logging

from twilio.base.exceptions import TwilioRestException
from twilio.jwt.access_token import AccessToken
from twilio.jwt.access_token.grants import ChatGrant, VideoGrant
from twilio.request_validator import RequestValidator
from twilio.rest import Client

from legalpro_lib.config import get_settings
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 3600

RECORD_ALL = [{'type': 'include', 'all': True}]
RECORD_NONE = [{'type': 'exclude', 'all': True}]


class TwilioClient:
    def __init__(self, client: Optional[Client] = None):
        self.settings = get_settings()
        self._client = client
        self.validator = RequestValidator(self.settings.twilio_auth_token)

    @property
    def client(self) -> Client:
        # Created on first use so the app can boot without Twilio credentials
        if self._client is None:
            try:
                self._client = Client(
                    self.settings.twilio_account_sid,
                    self.settings.twilio_auth_token
                )
            except Exception as e:
                logger.error(f"Failed to initialize Twilio client: {str(e)}")
                raise AppError("Failed to initialize Twilio client")
        return self._client

    def create_access_token(
        self,
        identity: str,
        session_type: str,
        room_name: Optional[str] = None,
        conversation_sid: Optional[str] = None
    ) -> str:
        """Mint a Twilio access token granting video (video/voice) or chat access."""
        if not (self.settings.twilio_account_sid and self.settings.twilio_api_key and self.settings.twilio_api_secret):
            logger.error("Missing Twilio credentials")
            raise AppError("Twilio configuration error")

        token = AccessToken(
            self.settings.twilio_account_sid,
            self.settings.twilio_api_key,
            self.settings.twilio_api_secret,
            identity=identity,
            ttl=TOKEN_TTL_SECONDS
        )
        if session_type in ('video', 'voice'):
            token.add_grant(VideoGrant(room=room_name))
        elif session_type == 'chat':
            token.add_grant(ChatGrant(service_sid=self.settings.twilio_chat_service_sid or conversation_sid))

        jwt = token.to_jwt()
        return jwt.decode() if isinstance(jwt, bytes) else jwt

    def _update_recording_rules(self, room_sid: str, rules) -> None:
        try:
            self.client.video.v1.rooms(room_sid).recording_rules.update(rules=rules)
        except TwilioRestException as e:
            logger.error(f"Twilio error updating recording rules for {room_sid}: {str(e)}")
            if e.status == 404:
                raise AppError(f"Room {room_sid} not found", status_code=404, user_message="Room not found")
            raise AppError(f"Failed to update recording rules: {str(e)}")

    def start_recording(self, room_sid: str) -> None:
        logger.info(f"Starting recording for room {room_sid}")
        self._update_recording_rules(room_sid, RECORD_ALL)

    def stop_recording(self, room_sid: str) -> None:
        logger.info(f"Stopping recording for room {room_sid}")
        self._update_recording_rules(room_sid, RECORD_NONE)

    def validate_request(self, url: str, params: Dict[str, str], signature: Optional[str]) -> bool:
        if not signature:
            return False
        return self.validator.validate(url, params, signature)

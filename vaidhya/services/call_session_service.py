"""Call session tokens - signed, time-limited join tokens for video/audio rooms"""

import logging
import secrets
from datetime import datetime
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..config import CALL_APP_ID, CALL_TOKEN_SECRET, CALL_TOKEN_TTL_SECONDS

logger = logging.getLogger(__name__)

TOKEN_SALT = "call-session"

# Participant ids are positive signed 32-bit ints
UID_RANGE = 2**31 - 1


class CallSessionService:
    """Issues channel names and participant tokens for appointment calls"""

    def __init__(
        self,
        secret: str = CALL_TOKEN_SECRET,
        app_id: str = CALL_APP_ID,
        ttl_seconds: int = CALL_TOKEN_TTL_SECONDS,
    ):
        self.app_id = app_id
        self.ttl_seconds = ttl_seconds
        self.serializer = URLSafeTimedSerializer(secret)

    @staticmethod
    def create_channel(appointment_public_id: str) -> str:
        """Unique room name for an appointment"""
        return f"vaidhya_appointment_{appointment_public_id}_{secrets.token_hex(4)}"

    @staticmethod
    def allocate_uids() -> tuple[int, int]:
        """Random, distinct participant ids for the customer and provider side"""
        customer_uid = secrets.randbelow(UID_RANGE) + 1
        provider_uid = secrets.randbelow(UID_RANGE) + 1
        while provider_uid == customer_uid:
            provider_uid = secrets.randbelow(UID_RANGE) + 1
        return customer_uid, provider_uid

    def token_for(self, channel_name: str, role: str, uid: int) -> str:
        """Join token binding a participant id to a channel"""
        return self.serializer.dumps(
            {
                "app_id": self.app_id,
                "channel": channel_name,
                "role": role,
                "uid": uid,
                "issued_at": datetime.utcnow().isoformat(),
            },
            salt=TOKEN_SALT,
        )

    def verify_token(self, token: str, max_age: Optional[int] = None) -> Optional[dict[str, Any]]:
        """
        Decode a join token

        Returns:
            Token payload if valid, None if invalid or expired
        """
        try:
            return self.serializer.loads(
                token, salt=TOKEN_SALT, max_age=max_age if max_age is not None else self.ttl_seconds
            )
        except SignatureExpired:
            logger.warning("⚠️ Call token expired")
            return None
        except BadSignature:
            logger.warning("⚠️ Invalid call token signature")
            return None


def get_call_session_service() -> CallSessionService:
    return CallSessionService()

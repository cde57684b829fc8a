import jwt
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from app.core.config import (
    JWT_SECRET_KEY,
    JWT_ALGORITHM,
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
)
from app.core.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access_token"


class JWTManager:
    """Issues and verifies the bearer tokens that carry the caller's identity"""

    def __init__(
        self,
        secret_key: str = JWT_SECRET_KEY,
        algorithm: str = JWT_ALGORITHM,
        access_token_expire_minutes: int = JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def _require_secret(self):
        if not self.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY", "JWT secret is not configured")

    def create_access_token(
        self,
        user_id: int,
        role: str,
        extra_data: Optional[Dict[str, Any]] = None,
        expires_minutes: Optional[int] = None,
    ) -> str:
        """
        Create a signed access token

        Args:
            user_id: Id of the user record (stored as `sub`)
            role: COACH, PARENT or ADMIN
            extra_data: Additional claims
            expires_minutes: Override of the configured lifetime
        """
        self._require_secret()

        now = datetime.now(timezone.utc)
        lifetime = (
            self.access_token_expire_minutes
            if expires_minutes is None
            else expires_minutes
        )

        payload = {
            "sub": str(user_id),
            "role": str(getattr(role, "value", role)),
            "exp": now + timedelta(minutes=lifetime),
            "iat": now,
            "type": ACCESS_TOKEN_TYPE,
        }
        if extra_data:
            payload.update(extra_data)

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Access token issued for user {user_id} ({payload['role']})")
        return token

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its payload

        Raises:
            AuthenticationError: expired, malformed or wrong token type
        """
        self._require_secret()

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Expired access token rejected")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.info(f"Invalid access token rejected: {e}")
            raise AuthenticationError("Invalid token")

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise AuthenticationError("Invalid token type")

        if not payload.get("sub") or not payload.get("role"):
            raise AuthenticationError("Token is missing identity claims")

        return payload


jwt_manager = JWTManager()


def create_access_token(user_id: int, role: str, **kwargs) -> str:
    return jwt_manager.create_access_token(user_id, role, **kwargs)

"""
Token service: signed, time-limited bearer tokens carrying user identity.
"""

from datetime import datetime, timedelta, timezone

import structlog
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from api import errors
from api.models import TokenClaims

logger = structlog.get_logger(__name__)


class TokenService:
    """Issues and verifies JWTs signed with a process-wide secret."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_minutes: int = 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expires_minutes)

    def issue(self, user_id: str, username: str) -> str:
        """
        Create a signed token for a user.

        Args:
            user_id: User identifier
            username: Username

        Returns:
            Encoded JWT expiring after the configured lifetime
        """
        now = datetime.now(timezone.utc)
        claims = {
            "userId": str(user_id),
            "username": username,
            "iat": now,
            "exp": now + self.expires_delta,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token's signature and expiry.

        Returns:
            The identity claims embedded in the token

        Raises:
            InvalidToken: If the token is malformed, tampered with or expired
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return TokenClaims(**payload)
        except JWTError as e:
            logger.warning("Token rejected", reason=str(e))
            raise errors.InvalidToken(detail=str(e))
        except PydanticValidationError:
            logger.warning("Token rejected", reason="missing identity claims")
            raise errors.InvalidToken(detail="Token is missing identity claims")

"""
Bearer-token authentication for write endpoints.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api import errors
from api.models import TokenClaims
from api.tokens import TokenService

logger = structlog.get_logger(__name__)

# Missing credentials are reported by require_user, not by the scheme
security = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(get_token_service)
) -> TokenClaims:
    """
    Verify the bearer token and attach its identity to the request.

    Args:
        request: Incoming request; claims are stored on request.state.user
        credentials: Parsed Authorization header, if any

    Returns:
        Verified token claims

    Raises:
        Unauthorized: If no bearer token was sent
        Forbidden: If the token is invalid or expired
    """
    if credentials is None or not credentials.credentials:
        logger.info("Rejected request without token", path=request.url.path)
        raise errors.Unauthorized()

    try:
        claims = tokens.verify(credentials.credentials)
    except errors.InvalidToken as e:
        logger.warning("Rejected request with invalid token", path=request.url.path)
        raise errors.Forbidden(detail=e.detail)

    request.state.user = claims
    return claims

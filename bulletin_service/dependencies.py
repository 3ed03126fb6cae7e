"""
FastAPI dependencies: services held on app.state and the bearer-token gate.
"""
import logging
from typing import Optional

from fastapi import Header, Request

from .auth import InvalidToken, PasswordHasher, TokenService
from .errors import Forbidden, Unauthenticated
from .schemas import TokenClaims

logger = logging.getLogger(__name__)


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token segment of an ``Authorization: Bearer <token>`` header, if any."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def require_user(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> TokenClaims:
    """
    Gate for mutating routes.

    No token -> 401, token that fails verification -> 403. On success the
    claims are attached to ``request.state.user`` and returned.
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise Unauthenticated("Token not provided.")

    try:
        claims = get_token_service(request).verify(token)
    except InvalidToken as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise Forbidden("Invalid token.") from exc

    request.state.user = claims
    return claims

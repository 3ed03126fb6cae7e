from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple
import hmac
import logging

import jwt
from pydantic import ValidationError as SchemaError

from .schemas import TokenClaims

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=24)
ALGORITHM = "HS256"
PBKDF2_ROUNDS = 29000


class InvalidToken(Exception):
    """Raised when a bearer token is malformed, forged or expired."""


class LegacyPlaintextFallback:
    """
    Direct comparison against passwords stored before hashing was introduced.

    Only consulted for stored values that are not a recognised hash, i.e.
    accounts that have not logged in (and been re-hashed) since. Disabled
    unless LEGACY_PLAINTEXT_PASSWORDS is set. This is a security liability:
    switch it off as soon as the data is migrated.
    """

    def __init__(self, enabled: bool = False):
        self.enabled = enabled

    def matches(self, plain_password: str, stored_value: str) -> bool:
        if not self.enabled:
            return False
        logger.warning("Legacy plaintext password comparison used")
        return hmac.compare_digest(plain_password.encode("utf-8"), stored_value.encode("utf-8"))


class PasswordHasher:
    # pbkdf2_sha256 avoids external bcrypt backend issues in some environments.
    # bcrypt stays listed (deprecated) so hashes from the first deployment
    # still verify and get upgraded on the next login.
    def __init__(self, legacy: Optional[LegacyPlaintextFallback] = None, rounds: int = PBKDF2_ROUNDS):
        self.legacy = legacy or LegacyPlaintextFallback(enabled=False)
        self._context = CryptContext(
            schemes=["pbkdf2_sha256", "bcrypt"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=rounds,
            pbkdf2_sha256__min_rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def is_hashed(self, stored_value: str) -> bool:
        return bool(stored_value) and self._context.identify(stored_value) is not None

    def verify(self, plain_password: str, stored_value: str) -> bool:
        if not plain_password or not stored_value:
            return False

        if self.is_hashed(stored_value):
            try:
                return self._context.verify(plain_password, stored_value)
            except ValueError:
                logger.warning("Stored password hash is malformed")
                return False

        return self.legacy.matches(plain_password, stored_value)

    def verify_and_update(self, plain_password: str, stored_value: str) -> Tuple[bool, Optional[str]]:
        """
        Verify a password and, when it matches an outdated representation
        (plaintext or a deprecated scheme), return a fresh hash to store.

        Returns:
            Tuple of (is_valid, new_hash); new_hash is None when nothing changes.
        """
        if not self.verify(plain_password, stored_value):
            return False, None

        if not self.is_hashed(stored_value) or self._context.needs_update(stored_value):
            return True, self.hash(plain_password)

        return True, None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Issues and verifies signed, time-limited bearer tokens.

    Tokens are HS256 JWTs carrying the user's id, name and email plus
    ``iat`` and ``exp``; ``exp`` is always exactly ``ttl`` after ``iat``.
    Nothing is stored server side, so a token stays valid until it expires.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        algorithm: str = ALGORITHM,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl
        self.algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: int, name: str, email: str) -> str:
        issued_at = int(self._clock().timestamp())
        payload = {
            "id": user_id,
            "name": name,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + int(self.ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode a token and return its claims.

        Raises:
            InvalidToken: bad signature, malformed token, missing claims,
                or the current time is at or past ``exp``.
        """
        if not token:
            raise InvalidToken("Token is empty")

        try:
            # Expiry is checked below against the service clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["id", "email", "iat", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
            claims = TokenClaims(**payload)
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(str(exc)) from exc
        except (SchemaError, TypeError) as exc:
            raise InvalidToken("Token claims are malformed") from exc

        if self._clock().timestamp() >= claims.exp:
            raise InvalidToken("Token has expired")

        return claims

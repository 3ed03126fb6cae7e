"""
Logging setup and authentication event logging.
"""
from datetime import datetime
from typing import Optional
from fastapi import Request
import sys
import logging
import os

from ..config import Settings
from ..models import User

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ALLOWED_EVENT_TYPES = {
    "register",
    "login_success",
    "login_failure",
}


def configure_logging(settings: Settings) -> None:
    """
    Configure stdout logging and, when LOG_DIR is set, a log file in it.

    File logging is best effort: if the directory cannot be created the
    service keeps logging to stdout only.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.LOG_DIR:
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(settings.LOG_DIR, "bulletin_service.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )


def client_ip(request: Request) -> Optional[str]:
    """Client address, falling back to the first X-Forwarded-For entry."""
    ip_address = request.client.host if request.client else None

    # Check for X-Forwarded-For header (proxy/load balancer scenarios)
    if not ip_address and request.headers.get("x-forwarded-for"):
        ip_address = request.headers.get("x-forwarded-for").split(",")[0].strip()

    return ip_address


def log_auth_event(
    event_type: str,
    request: Request,
    user: Optional[User] = None,
    email: Optional[str] = None
) -> None:
    """
    Log an authentication event.

    Only identifiers are recorded (user id, email, client IP, user agent);
    passwords and tokens never reach the log.

    Args:
        event_type: One of: register, login_success, login_failure
        request: FastAPI Request object
        user: User the event concerns, when known
        email: Email supplied by the client, used when no user is known

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    logger.info(
        "AUTH %s user_id=%s email=%s ip=%s user_agent=%s timestamp=%s",
        event_type,
        user.id if user else None,
        user.email if user else email,
        client_ip(request),
        request.headers.get("user-agent"),
        datetime.utcnow().isoformat()
    )

"""
Message use-cases. Authentication is enforced by the routes, not here.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import InternalError, NotFound, ValidationError
from .models import Message

logger = logging.getLogger(__name__)

MESSAGE_NOT_FOUND = "Message not found."


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to %s message", action)
        raise InternalError(f"Could not {action} message.") from e


def _get_or_404(db: Session, message_id: int) -> Message:
    try:
        message = db.get(Message, message_id)
    except SQLAlchemyError as e:
        logger.exception("Failed to load message id=%s", message_id)
        raise InternalError("Could not fetch message.") from e
    if message is None:
        raise NotFound(MESSAGE_NOT_FOUND)
    return message


def list_messages(db: Session) -> List[Message]:
    """All messages, newest id first."""
    try:
        return db.query(Message).order_by(Message.id.desc()).all()
    except SQLAlchemyError as e:
        logger.exception("Failed to list messages")
        raise InternalError("Could not fetch messages.") from e


def create_message(db: Session, title: Optional[str], text: Optional[str], timestamp: Optional[str]) -> Message:
    if not (_present(title) and _present(text) and _present(timestamp)):
        raise ValidationError("Title, text and timestamp are required.")

    message = Message(title=title, text=text, timestamp=timestamp)
    db.add(message)
    _commit(db, "create")
    db.refresh(message)
    return message


def update_message(db: Session, message_id: int, title: Optional[str], text: Optional[str]) -> Message:
    # Existence is checked before the payload
    message = _get_or_404(db, message_id)

    if not (_present(title) and _present(text)):
        raise ValidationError("Title and text are required.")

    message.title = title
    message.text = text
    _commit(db, "update")
    db.refresh(message)
    return message


def delete_message(db: Session, message_id: int) -> str:
    message = _get_or_404(db, message_id)
    db.delete(message)
    _commit(db, "delete")
    return "Message deleted successfully."

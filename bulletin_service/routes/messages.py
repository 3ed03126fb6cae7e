"""
Message endpoints. Reading is public; create, update and delete require a
valid bearer token.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import messages
from ..db import get_db
from ..dependencies import require_user
from ..schemas import DeleteResponse, MessageCreate, MessageOut, MessageUpdate, TokenClaims

router = APIRouter(prefix="/mensagens", tags=["messages"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[MessageOut])
def list_messages(db: Session = Depends(get_db)):
    return messages.list_messages(db)


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def create_message(
    payload: MessageCreate,
    user: TokenClaims = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = messages.create_message(db, payload.title, payload.text, payload.timestamp)
    logger.info("Message created: id=%s by user_id=%s", message.id, user.id)
    return message


@router.put("/{message_id}", response_model=MessageOut)
def update_message(
    message_id: int,
    payload: MessageUpdate,
    user: TokenClaims = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = messages.update_message(db, message_id, payload.title, payload.text)
    logger.info("Message updated: id=%s by user_id=%s", message.id, user.id)
    return message


@router.delete("/{message_id}", response_model=DeleteResponse)
def delete_message(
    message_id: int,
    user: TokenClaims = Depends(require_user),
    db: Session = Depends(get_db),
):
    confirmation = messages.delete_message(db, message_id)
    logger.info("Message deleted: id=%s by user_id=%s", message_id, user.id)
    return DeleteResponse(message=confirmation)

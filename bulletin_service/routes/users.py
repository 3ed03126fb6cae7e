"""
User listing, registration and login endpoints.
"""
from typing import List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..accounts import authenticate_user, list_users, register_user
from ..auth import PasswordHasher, TokenService
from ..db import get_db
from ..dependencies import get_hasher, get_token_service
from ..errors import Unauthorized
from ..schemas import LoginResponse, UserCreate, UserListItem, UserLogin, UserPublic
from ..utils.event_logger import log_auth_event

router = APIRouter(tags=["users"])


@router.get("/usuarios", response_model=List[UserListItem])
def get_users(db: Session = Depends(get_db)):
    """List every account (id, name, email, createdAt). Debug listing."""
    return list_users(db)


@router.post("/auth/cadastrar", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
):
    user = register_user(db, hasher, payload.name, payload.email, payload.password)
    log_auth_event("register", request, user=user)
    return user


@router.post("/auth/login", response_model=LoginResponse)
def login(
    credentials: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenService = Depends(get_token_service),
):
    try:
        token, user = authenticate_user(db, hasher, tokens, credentials.email, credentials.password)
    except Unauthorized:
        log_auth_event("login_failure", request, email=credentials.email)
        raise

    log_auth_event("login_success", request, user=user)
    return LoginResponse(token=token, user=UserPublic.model_validate(user))

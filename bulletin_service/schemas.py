from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

# Request bodies accept both the English field names and the ones sent by
# the original Portuguese client (nome, senha, titulo, texto, dataHora).
# Fields are optional here so that missing values surface as a 400 from
# the account/message flows instead of FastAPI's 422.


class UserCreate(BaseModel):
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nome"))
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, validation_alias=AliasChoices("password", "senha"))


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, validation_alias=AliasChoices("password", "senha"))


class MessageCreate(BaseModel):
    title: Optional[str] = Field(default=None, validation_alias=AliasChoices("title", "titulo"))
    text: Optional[str] = Field(default=None, validation_alias=AliasChoices("text", "texto"))
    timestamp: Optional[str] = Field(default=None, validation_alias=AliasChoices("timestamp", "dataHora"))


class MessageUpdate(BaseModel):
    title: Optional[str] = Field(default=None, validation_alias=AliasChoices("title", "titulo"))
    text: Optional[str] = Field(default=None, validation_alias=AliasChoices("text", "texto"))


class _CamelOut(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class UserPublic(_CamelOut):
    id: int
    name: str
    email: str


class UserListItem(UserPublic):
    created_at: datetime


class LoginResponse(_CamelOut):
    token: str
    user: UserPublic


class MessageOut(_CamelOut):
    id: int
    title: str
    text: str
    timestamp: str
    created_at: datetime
    updated_at: datetime


class DeleteResponse(BaseModel):
    message: str


class TokenClaims(BaseModel):
    """Identity carried inside a bearer token."""
    id: int
    name: Optional[str] = None
    email: str
    iat: int
    exp: int

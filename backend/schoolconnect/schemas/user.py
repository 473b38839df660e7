"""
Schémas Pydantic pour la gestion des utilisateurs par un administrateur.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, field_validator

from schoolconnect.models.user import USER_ROLES
from schoolconnect.schemas.base import CamelModel, not_blank, not_null, password_policy


def _valid_role(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in USER_ROLES:
        raise ValueError(f"Rôle invalide. Valeurs acceptées : {list(USER_ROLES)}")
    return v


class UserCreate(CamelModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    role: str
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def strong_enough(cls, v: str) -> str:
        return password_policy(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: str) -> str:
        return _valid_role(v)


class UserUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_empty(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(not_null(v))

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: Optional[str]) -> Optional[str]:
        return _valid_role(not_null(v))


class UserResponse(CamelModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: str
    phone: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

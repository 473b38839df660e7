"""
Schémas Pydantic pour l'authentification et l'identité de session.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, field_validator

from schoolconnect.schemas.base import CamelModel, not_blank, password_policy

SELF_REGISTRATION_ROLES = {"parent", "teacher"}


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class RegisterRequest(CamelModel):
    """Inscription libre. Les comptes admin passent par l'onboarding ou un admin."""
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    role: str = "parent"
    phone: Optional[str] = None

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
    def allowed_role(cls, v: str) -> str:
        if v not in SELF_REGISTRATION_ROLES:
            raise ValueError(f"Rôle invalide pour une inscription. Valeurs acceptées : {sorted(SELF_REGISTRATION_ROLES)}")
        return v


class UserPublic(CamelModel):
    """Champs publics d'un utilisateur (jamais le hash du mot de passe)."""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: str


class SessionResponse(CamelModel):
    token: str
    user: UserPublic


class SessionIdentity(CamelModel):
    """Identité portée par un jeton de session vérifié."""
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    role: str
    jti: str
    expires_at: datetime


class RequestContext(CamelModel):
    """Contexte d'une requête authentifiée, après contrôle du tenant."""
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    jti: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

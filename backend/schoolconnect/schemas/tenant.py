"""
Schémas Pydantic pour les établissements (onboarding et informations publiques).
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, field_validator

from schoolconnect.schemas.auth import UserPublic
from schoolconnect.schemas.base import CamelModel, not_blank, password_policy

SUBDOMAIN_REGEX = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,98}[a-z0-9])?$")


class AdminAccountCreate(CamelModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str

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


class TenantCreate(CamelModel):
    name: str
    subdomain: str
    contact_email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    admin: AdminAccountCreate

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("subdomain")
    @classmethod
    def valid_subdomain(cls, v: str) -> str:
        v = v.strip().lower()
        if not SUBDOMAIN_REGEX.match(v):
            raise ValueError("Sous-domaine invalide (lettres minuscules, chiffres et tirets).")
        return v


class TenantResponse(CamelModel):
    id: uuid.UUID
    name: str
    subdomain: str
    contact_email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class TenantOnboardingResponse(CamelModel):
    tenant: TenantResponse
    token: str
    user: UserPublic

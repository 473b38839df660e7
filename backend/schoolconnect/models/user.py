"""
Modèles SQLAlchemy pour les utilisateurs et la liste de révocation des sessions.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid, func

from schoolconnect.database import Base

USER_ROLES = ("admin", "teacher", "parent")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        # L'email est unique au sein d'un tenant, pas globalement
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False)  # admin, teacher, parent
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)  # désactivation logique
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RevokedToken(Base):
    """Jetons révoqués avant expiration (déconnexion côté serveur)."""
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), primary_key=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)  # purgeable après cette date
    revoked_at = Column(DateTime, server_default=func.now())

"""
Modèles SQLAlchemy pour les établissements (tenants) et leurs écoles.
Le tenant est l'unité de partitionnement : toutes les autres tables le référencent.
"""

import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid, func

from schoolconnect.database import Base


class Tenant(Base):
    """Organisation scolaire isolée (identifiée par son sous-domaine)."""
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    subdomain = Column(String(100), unique=True, nullable=False)
    contact_email = Column(Text, nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    settings = Column(JSON, default=dict)  # timezone, horaires, barème
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class School(Base):
    __tablename__ = "schools"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(Text, nullable=True)
    principal_name = Column(Text, nullable=True)
    grade_range = Column(Text, nullable=True)  # Ex: "K-5", "6-8"
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

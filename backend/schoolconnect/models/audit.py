"""
Modèle SQLAlchemy pour le journal d'audit (ajout uniquement).
"""

import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid, func

from schoolconnect.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False)  # Ex: "announcement.create"
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid, nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

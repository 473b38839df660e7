"""
Modèle SQLAlchemy pour les demandes des parents (sortie anticipée, maladie, autorisation).

Cycle de vie : pending → approved | rejected (états terminaux).
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid, func

from schoolconnect.database import Base

FORM_TYPES = ("early_pickup", "sick_leave", "permission_slip")
FORM_STATUSES = ("pending", "approved", "rejected")


class FormRequest(Base):
    __tablename__ = "form_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    form_type = Column(String(50), nullable=False)
    title = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    request_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)  # demandes sur plusieurs jours
    status = Column(String(20), default="pending", nullable=False)
    admin_notes = Column(Text, nullable=True)
    processed_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

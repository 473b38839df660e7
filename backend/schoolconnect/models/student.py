"""
Modèles SQLAlchemy pour les élèves et leur lien avec les parents.
"""

import uuid
from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid, func,
)

from schoolconnect.database import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("tenant_id", "student_number", name="uq_students_tenant_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_number = Column(String(50), nullable=False)  # matricule interne à l'école
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    grade = Column(String(10), nullable=False)
    emergency_contact = Column(JSON, nullable=True)  # {name, phone, relationship}
    medical_info = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ParentStudent(Base):
    """Association parent ↔ élève (plusieurs tuteurs possibles)."""
    __tablename__ = "parents_students"
    __table_args__ = (
        UniqueConstraint("parent_id", "student_id", name="uq_parents_students"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    relationship = Column(String(50), nullable=False, default="parent")  # parent, guardian...
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

"""
Modèles SQLAlchemy pour les notes : catégories pondérées, devoirs et résultats.
"""

import uuid
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Numeric, Text, UniqueConstraint, Uuid, func,
)

from schoolconnect.database import Base


class GradeCategory(Base):
    """Catégorie de notes d'une classe, pondérée en pourcentage de la note finale."""
    __tablename__ = "grade_categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    weight = Column(Numeric(5, 2), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Uuid, ForeignKey("grade_categories.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    max_points = Column(Numeric(8, 2), nullable=False)
    due_date = Column(DateTime, nullable=True)
    assigned_date = Column(DateTime, server_default=func.now())
    instructions = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AssignmentScore(Base):
    """Résultat d'un élève pour un devoir. points = NULL tant que non corrigé."""
    __tablename__ = "assignment_scores"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_assignment_score"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_id = Column(Uuid, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    points = Column(Numeric(8, 2), nullable=True)
    feedback = Column(Text, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

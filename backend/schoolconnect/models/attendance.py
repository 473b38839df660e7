"""
Modèle SQLAlchemy pour les présences journalières en classe.
Une seule ligne par (élève, classe, date).
"""

import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid, func

from schoolconnect.database import Base

ATTENDANCE_STATUSES = ("present", "absent", "late", "excused")


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "student_id", "classroom_id", "date", name="uq_attendance_daily"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # present, absent, late, excused
    arrival_time = Column(DateTime, nullable=True)  # uniquement present / late
    notes = Column(Text, nullable=True)
    marked_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

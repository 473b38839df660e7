"""
Service métier pour les présences journalières.

Règles :
- une seule présence par (élève, classe, date) → ConflictError sinon
- l'heure d'arrivée ne concerne que les statuts present / late (maintenant par défaut)
- un enseignant ne pointe que dans ses propres classes
"""

import uuid
import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import ConflictError, NotFoundError, ValidationError
from schoolconnect.models.attendance import AttendanceRecord
from schoolconnect.models.classroom import Classroom
from schoolconnect.schemas.attendance import AttendanceCreate, AttendanceResponse, AttendanceUpdate
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.services import audit_service, classroom_service, student_service

logger = logging.getLogger(__name__)

STATUSES_WITH_ARRIVAL = ("present", "late")


def _resolve_arrival(status: str, arrival_time: Optional[datetime]) -> Optional[datetime]:
    """Applique la règle de l'heure d'arrivée pour un statut donné."""
    if status in STATUSES_WITH_ARRIVAL:
        return arrival_time or datetime.now(timezone.utc)
    if arrival_time is not None:
        raise ValidationError("L'heure d'arrivée n'est permise que pour les statuts present et late.")
    return None


def list_attendance(
    db: Session,
    ctx: RequestContext,
    day: Optional[date] = None,
    classroom_id: Optional[uuid.UUID] = None,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[AttendanceResponse]:
    """Présences d'une journée (aujourd'hui par défaut), éventuellement filtrées par classe."""
    query = select(AttendanceRecord).where(
        AttendanceRecord.tenant_id == ctx.tenant_id,
        AttendanceRecord.date == (day or date.today()),
    )
    if classroom_id:
        query = query.where(AttendanceRecord.classroom_id == classroom_id)
    if ctx.role == "teacher":
        query = query.where(AttendanceRecord.classroom_id.in_(
            select(Classroom.id).where(
                Classroom.tenant_id == ctx.tenant_id,
                Classroom.teacher_id == ctx.user_id,
            )
        ))
    records = db.execute(
        query.order_by(AttendanceRecord.created_at).limit(limit)
    ).scalars().all()
    return [AttendanceResponse.model_validate(r) for r in records]


def list_student_attendance(
    db: Session,
    ctx: RequestContext,
    student_id: uuid.UUID,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[AttendanceResponse]:
    """Historique d'un élève visible par l'appelant, du plus récent au plus ancien."""
    student = student_service.get_visible_student(db, ctx, student_id)
    records = db.execute(
        select(AttendanceRecord)
        .where(
            AttendanceRecord.tenant_id == ctx.tenant_id,
            AttendanceRecord.student_id == student.id,
        )
        .order_by(AttendanceRecord.date.desc())
        .limit(limit)
    ).scalars().all()
    return [AttendanceResponse.model_validate(r) for r in records]


def create_attendance(db: Session, ctx: RequestContext, data: AttendanceCreate) -> AttendanceResponse:
    """Enregistre une présence. L'auteur du pointage est l'utilisateur de la session."""
    classroom = classroom_service.get_staff_classroom(db, ctx, data.classroom_id)
    student = student_service.get_tenant_student(db, ctx.tenant_id, data.student_id)
    arrival_time = _resolve_arrival(data.status, data.arrival_time)

    existing = db.execute(
        select(AttendanceRecord.id).where(
            AttendanceRecord.tenant_id == ctx.tenant_id,
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.classroom_id == classroom.id,
            AttendanceRecord.date == data.date,
        )
    ).first()
    if existing is not None:
        raise ConflictError("Présence déjà enregistrée pour cet élève à cette date.")

    record = AttendanceRecord(
        tenant_id=ctx.tenant_id,
        student_id=student.id,
        classroom_id=classroom.id,
        date=data.date,
        status=data.status,
        arrival_time=arrival_time,
        notes=data.notes,
        marked_by=ctx.user_id,
    )
    db.add(record)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Présence déjà enregistrée pour cet élève à cette date.")

    audit_service.record(db, ctx, "attendance.create", "attendance", record.id, new_values=data.model_dump())
    db.commit()
    db.refresh(record)
    return AttendanceResponse.model_validate(record)


def update_attendance(
    db: Session,
    ctx: RequestContext,
    record_id: uuid.UUID,
    data: AttendanceUpdate,
) -> AttendanceResponse:
    """Corrige une présence. La règle de l'heure d'arrivée s'applique au statut final."""
    record = db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.id == record_id,
            AttendanceRecord.tenant_id == ctx.tenant_id,
        )
    ).scalar_one_or_none()
    if record is None:
        raise NotFoundError("Présence introuvable.")
    classroom_service.get_staff_classroom(db, ctx, record.classroom_id)

    update_data = data.model_dump(exclude_unset=True)
    old = {"status": record.status, "arrival_time": record.arrival_time, "notes": record.notes}

    status = update_data.get("status", record.status)
    if "arrival_time" in update_data:
        arrival = update_data["arrival_time"]
    elif status in STATUSES_WITH_ARRIVAL:
        arrival = record.arrival_time
    else:
        arrival = None

    record.status = status
    record.arrival_time = _resolve_arrival(status, arrival)
    if "notes" in update_data:
        record.notes = update_data["notes"]
    record.marked_by = ctx.user_id

    audit_service.record(db, ctx, "attendance.update", "attendance", record.id, old_values=old, new_values=update_data)
    db.commit()
    db.refresh(record)
    return AttendanceResponse.model_validate(record)


def present_today(db: Session, tenant_id: uuid.UUID) -> int:
    """Nombre d'élèves distincts présents ou en retard aujourd'hui."""
    return len(set(db.execute(
        select(AttendanceRecord.student_id).where(
            AttendanceRecord.tenant_id == tenant_id,
            AttendanceRecord.date == date.today(),
            AttendanceRecord.status.in_(STATUSES_WITH_ARRIVAL),
        )
    ).scalars().all()))


def attendance_rate(db: Session, tenant_id: uuid.UUID, student_id: uuid.UUID,
                    classroom_id: Optional[uuid.UUID] = None) -> Optional[float]:
    """Taux de présence (present + late + excused) en pourcentage, None sans historique."""
    query = select(AttendanceRecord.status).where(
        AttendanceRecord.tenant_id == tenant_id,
        AttendanceRecord.student_id == student_id,
    )
    if classroom_id:
        query = query.where(AttendanceRecord.classroom_id == classroom_id)
    statuses = db.execute(query).scalars().all()
    if not statuses:
        return None
    attended = sum(1 for s in statuses if s != "absent")
    return round(attended * 100 / len(statuses), 2)

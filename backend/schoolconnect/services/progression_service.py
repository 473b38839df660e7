"""
Service métier pour les bilans de progression.

Un bilan est écrit une seule fois par (élève, classe, période) et n'est jamais modifié.
La note globale et le taux de présence absents de la requête sont calculés à partir
des résultats et des présences de l'élève dans la classe.
"""

import uuid
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import ConflictError
from schoolconnect.models.progression import ProgressionSnapshot
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.progression import ProgressionCreate, ProgressionResponse
from schoolconnect.services import (
    attendance_service,
    audit_service,
    classroom_service,
    grading_service,
    student_service,
)

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Un bilan existe déjà pour cet élève sur cette période."


def create_snapshot(db: Session, ctx: RequestContext, data: ProgressionCreate) -> ProgressionResponse:
    classroom = classroom_service.get_staff_classroom(db, ctx, data.classroom_id)
    student = student_service.get_tenant_student(db, ctx.tenant_id, data.student_id)

    existing = db.execute(
        select(ProgressionSnapshot.id).where(
            ProgressionSnapshot.tenant_id == ctx.tenant_id,
            ProgressionSnapshot.student_id == student.id,
            ProgressionSnapshot.classroom_id == classroom.id,
            ProgressionSnapshot.reporting_period == data.reporting_period,
        )
    ).first()
    if existing is not None:
        raise ConflictError(DUPLICATE_MESSAGE)

    overall_grade = data.overall_grade
    if overall_grade is None:
        overall_grade = grading_service.weighted_average(db, ctx.tenant_id, student.id, classroom.id)
    attendance_rate = data.attendance_rate
    if attendance_rate is None:
        attendance_rate = attendance_service.attendance_rate(db, ctx.tenant_id, student.id, classroom.id)

    snapshot = ProgressionSnapshot(
        tenant_id=ctx.tenant_id,
        student_id=student.id,
        classroom_id=classroom.id,
        reporting_period=data.reporting_period,
        overall_grade=overall_grade,
        attendance_rate=attendance_rate,
        behavior_notes=data.behavior_notes,
        academic_notes=data.academic_notes,
        goals=[g.model_dump() for g in data.goals],
    )
    db.add(snapshot)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)

    audit_service.record(db, ctx, "progression.create", "progression", snapshot.id, new_values=data.model_dump())
    db.commit()
    db.refresh(snapshot)
    return ProgressionResponse.model_validate(snapshot)


def list_for_student(
    db: Session,
    ctx: RequestContext,
    student_id: uuid.UUID,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[ProgressionResponse]:
    student = student_service.get_visible_student(db, ctx, student_id)
    snapshots = db.execute(
        select(ProgressionSnapshot)
        .where(
            ProgressionSnapshot.tenant_id == ctx.tenant_id,
            ProgressionSnapshot.student_id == student.id,
        )
        .order_by(ProgressionSnapshot.created_at.desc())
        .limit(limit)
    ).scalars().all()
    return [ProgressionResponse.model_validate(s) for s in snapshots]

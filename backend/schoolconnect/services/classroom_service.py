"""
Service métier pour les écoles, les classes et les inscriptions.
"""

import uuid
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import NotFoundError, ValidationError
from schoolconnect.models.classroom import Classroom, Enrollment
from schoolconnect.models.student import Student
from schoolconnect.models.tenant import School
from schoolconnect.models.user import User
from schoolconnect.policy import STAFF
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.classroom import (
    ClassroomCreate,
    ClassroomResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    SchoolCreate,
    SchoolResponse,
)
from schoolconnect.services import audit_service, student_service

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------
# Écoles
# ----------------------------------------------------------------

def create_school(db: Session, ctx: RequestContext, data: SchoolCreate) -> SchoolResponse:
    school = School(tenant_id=ctx.tenant_id, **data.model_dump())
    db.add(school)
    db.flush()
    audit_service.record(db, ctx, "school.create", "school", school.id, new_values=data.model_dump())
    db.commit()
    db.refresh(school)
    return SchoolResponse.model_validate(school)


def list_schools(db: Session, tenant_id: uuid.UUID) -> list[SchoolResponse]:
    schools = db.execute(
        select(School).where(School.tenant_id == tenant_id).order_by(School.name)
    ).scalars().all()
    return [SchoolResponse.model_validate(s) for s in schools]


# ----------------------------------------------------------------
# Classes
# ----------------------------------------------------------------

def get_classroom(db: Session, tenant_id: uuid.UUID, classroom_id: uuid.UUID) -> Classroom:
    """Classe active du tenant, sinon NotFoundError."""
    classroom = db.execute(
        select(Classroom).where(
            Classroom.id == classroom_id,
            Classroom.tenant_id == tenant_id,
            Classroom.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if classroom is None:
        raise NotFoundError("Classe introuvable.")
    return classroom


def get_staff_classroom(db: Session, ctx: RequestContext, classroom_id: uuid.UUID) -> Classroom:
    """Classe accessible en écriture : un enseignant ne gère que ses propres classes."""
    classroom = get_classroom(db, ctx.tenant_id, classroom_id)
    if ctx.role == "teacher" and classroom.teacher_id != ctx.user_id:
        raise NotFoundError("Classe introuvable.")
    return classroom


def get_readable_classroom(db: Session, ctx: RequestContext, classroom_id: uuid.UUID) -> Classroom:
    """
    Classe accessible en lecture. Le personnel voit toutes les classes du tenant ;
    un parent uniquement celles où l'un de ses enfants est inscrit.
    """
    classroom = get_classroom(db, ctx.tenant_id, classroom_id)
    if ctx.role in STAFF:
        return classroom
    visible = student_service.visible_query(ctx).with_only_columns(Student.id)
    enrolled = db.execute(
        select(Enrollment.id).where(
            Enrollment.tenant_id == ctx.tenant_id,
            Enrollment.classroom_id == classroom.id,
            Enrollment.is_active.is_(True),
            Enrollment.student_id.in_(visible),
        ).limit(1)
    ).scalar()
    if enrolled is None:
        raise NotFoundError("Classe introuvable.")
    return classroom


def create_classroom(db: Session, ctx: RequestContext, data: ClassroomCreate) -> ClassroomResponse:
    """Crée une classe. L'école et l'enseignant doivent appartenir au tenant."""
    school = db.execute(
        select(School).where(School.id == data.school_id, School.tenant_id == ctx.tenant_id)
    ).scalar_one_or_none()
    if school is None:
        raise NotFoundError("École introuvable.")

    teacher = db.execute(
        select(User).where(
            User.id == data.teacher_id,
            User.tenant_id == ctx.tenant_id,
            User.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Enseignant introuvable.")
    if teacher.role != "teacher":
        raise ValidationError("Le titulaire d'une classe doit être un enseignant.")

    classroom = Classroom(tenant_id=ctx.tenant_id, is_active=True, **data.model_dump())
    db.add(classroom)
    db.flush()
    audit_service.record(db, ctx, "classroom.create", "classroom", classroom.id, new_values=data.model_dump())
    db.commit()
    db.refresh(classroom)
    return _to_response(db, classroom)


def list_classrooms(db: Session, ctx: RequestContext, limit: int = settings.DEFAULT_PAGE_LIMIT) -> list[ClassroomResponse]:
    """Classes actives du tenant ; un enseignant ne voit que les siennes."""
    query = select(Classroom).where(Classroom.tenant_id == ctx.tenant_id, Classroom.is_active.is_(True))
    if ctx.role == "teacher":
        query = query.where(Classroom.teacher_id == ctx.user_id)
    classrooms = db.execute(query.order_by(Classroom.name).limit(limit)).scalars().all()
    return [_to_response(db, c) for c in classrooms]


def enroll_students(
    db: Session,
    ctx: RequestContext,
    classroom_id: uuid.UUID,
    data: EnrollmentCreate,
) -> list[EnrollmentResponse]:
    """
    Inscrit des élèves dans une classe.
    Les élèves déjà inscrits (inscription active) sont ignorés ; tous les élèves
    doivent appartenir au tenant, sinon rien n'est inscrit.
    """
    classroom = get_classroom(db, ctx.tenant_id, classroom_id)
    for student_id in set(data.student_ids):
        student_service.get_tenant_student(db, ctx.tenant_id, student_id)

    already = set(db.execute(
        select(Enrollment.student_id).where(
            Enrollment.tenant_id == ctx.tenant_id,
            Enrollment.classroom_id == classroom.id,
            Enrollment.is_active.is_(True),
        )
    ).scalars().all())

    created = []
    for student_id in dict.fromkeys(data.student_ids):  # dédupliqué, ordre conservé
        if student_id in already:
            continue
        enrollment = Enrollment(
            tenant_id=ctx.tenant_id,
            student_id=student_id,
            classroom_id=classroom.id,
            is_active=True,
        )
        db.add(enrollment)
        created.append(enrollment)

    if classroom.capacity is not None and len(already) + len(created) > classroom.capacity:
        db.rollback()
        raise ValidationError(f"Capacité de la classe dépassée ({classroom.capacity} places).")

    db.flush()
    audit_service.record(
        db, ctx, "classroom.enroll", "classroom", classroom.id,
        new_values={"student_ids": [e.student_id for e in created]},
    )
    db.commit()
    for enrollment in created:
        db.refresh(enrollment)

    logger.info("Classe %s : %d élèves inscrits", classroom.id, len(created))
    return [EnrollmentResponse.model_validate(e) for e in created]


def end_enrollment(db: Session, ctx: RequestContext, classroom_id: uuid.UUID, student_id: uuid.UUID) -> None:
    """Clôture l'inscription active d'un élève (is_active → False)."""
    enrollment = db.execute(
        select(Enrollment).where(
            Enrollment.tenant_id == ctx.tenant_id,
            Enrollment.classroom_id == classroom_id,
            Enrollment.student_id == student_id,
            Enrollment.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if enrollment is None:
        raise NotFoundError("Inscription introuvable.")

    enrollment.is_active = False
    audit_service.record(
        db, ctx, "classroom.unenroll", "classroom", classroom_id,
        old_values={"student_id": student_id},
    )
    db.commit()


def get_classroom_by_name(db: Session, tenant_id: uuid.UUID, name: str) -> Optional[Classroom]:
    return db.execute(
        select(Classroom).where(
            Classroom.tenant_id == tenant_id,
            func.lower(Classroom.name) == name.strip().lower(),
            Classroom.is_active.is_(True),
        )
    ).scalars().first()


def _to_response(db: Session, classroom: Classroom) -> ClassroomResponse:
    """Construit le schéma de réponse avec le nombre d'élèves inscrits."""
    total = db.execute(
        select(func.count())
        .select_from(Enrollment)
        .where(Enrollment.classroom_id == classroom.id, Enrollment.is_active.is_(True))
    ).scalar() or 0

    response = ClassroomResponse.model_validate(classroom)
    response.nb_students = total
    return response

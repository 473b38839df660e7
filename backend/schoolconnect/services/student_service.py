"""
Service métier pour les élèves : visibilité par rôle, création, lien parent ↔ élève.

Règles de visibilité :
- admin   : tous les élèves actifs du tenant
- teacher : élèves inscrits (inscription active) dans ses classes actives
- parent  : ses enfants (table parents_students)
"""

import uuid
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import ConflictError, NotFoundError, ValidationError
from schoolconnect.models.classroom import Classroom, Enrollment
from schoolconnect.models.student import ParentStudent, Student
from schoolconnect.models.user import User
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.student import (
    ParentLinkCreate,
    ParentLinkResponse,
    StudentCreate,
    StudentResponse,
)
from schoolconnect.services import audit_service, subscription_service

logger = logging.getLogger(__name__)


def _visibility_clause(ctx: RequestContext):
    """Clause WHERE supplémentaire selon le rôle (None pour un admin)."""
    if ctx.role == "teacher":
        return Student.id.in_(
            select(Enrollment.student_id)
            .join(Classroom, Classroom.id == Enrollment.classroom_id)
            .where(
                Classroom.tenant_id == ctx.tenant_id,
                Classroom.teacher_id == ctx.user_id,
                Classroom.is_active.is_(True),
                Enrollment.is_active.is_(True),
            )
        )
    if ctx.role == "parent":
        return Student.id.in_(
            select(ParentStudent.student_id).where(
                ParentStudent.tenant_id == ctx.tenant_id,
                ParentStudent.parent_id == ctx.user_id,
            )
        )
    return None


def visible_query(ctx: RequestContext):
    query = select(Student).where(Student.tenant_id == ctx.tenant_id, Student.is_active.is_(True))
    clause = _visibility_clause(ctx)
    if clause is not None:
        query = query.where(clause)
    return query


def list_students(db: Session, ctx: RequestContext, limit: int = settings.DEFAULT_PAGE_LIMIT) -> list[StudentResponse]:
    """Retourne les élèves visibles par l'appelant, triés par nom puis prénom."""
    students = db.execute(
        visible_query(ctx).order_by(Student.last_name, Student.first_name).limit(limit)
    ).scalars().all()
    return [StudentResponse.model_validate(s) for s in students]


def get_visible_student(db: Session, ctx: RequestContext, student_id: uuid.UUID) -> Student:
    """Élève visible par l'appelant, sinon NotFoundError (même hors tenant)."""
    student = db.execute(visible_query(ctx).where(Student.id == student_id)).scalar_one_or_none()
    if student is None:
        raise NotFoundError("Élève introuvable.")
    return student


def get_student(db: Session, ctx: RequestContext, student_id: uuid.UUID) -> StudentResponse:
    return StudentResponse.model_validate(get_visible_student(db, ctx, student_id))


def get_tenant_student(db: Session, tenant_id: uuid.UUID, student_id: uuid.UUID) -> Student:
    """Élève actif du tenant, sans filtre de rôle (usage staff)."""
    student = db.execute(
        select(Student).where(
            Student.id == student_id,
            Student.tenant_id == tenant_id,
            Student.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if student is None:
        raise NotFoundError("Élève introuvable.")
    return student


def create_student(db: Session, ctx: RequestContext, data: StudentCreate) -> StudentResponse:
    """
    Crée un élève dans le tenant.
    Lève ConflictError si le matricule existe déjà ou si la limite de l'abonnement est atteinte.
    """
    subscription_service.ensure_seats_available(db, ctx.tenant_id)

    student = Student(
        tenant_id=ctx.tenant_id,
        student_number=data.student_number,
        first_name=data.first_name,
        last_name=data.last_name,
        date_of_birth=data.date_of_birth,
        grade=data.grade,
        emergency_contact=data.emergency_contact.model_dump() if data.emergency_contact else None,
        medical_info=data.medical_info,
        is_active=True,
    )
    db.add(student)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Un élève avec le matricule '{data.student_number}' existe déjà.")

    subscription_service.refresh_student_count(db, ctx.tenant_id)
    audit_service.record(
        db, ctx, "student.create", "student", student.id,
        new_values=data.model_dump(exclude={"medical_info"}),
    )
    db.commit()
    db.refresh(student)
    return StudentResponse.model_validate(student)


def link_parent(
    db: Session,
    ctx: RequestContext,
    student_id: uuid.UUID,
    data: ParentLinkCreate,
) -> ParentLinkResponse:
    """Associe un compte parent actif du tenant à un élève."""
    student = get_tenant_student(db, ctx.tenant_id, student_id)

    parent = db.execute(
        select(User).where(
            User.id == data.parent_id,
            User.tenant_id == ctx.tenant_id,
            User.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if parent is None:
        raise NotFoundError("Parent introuvable.")
    if parent.role != "parent":
        raise ValidationError("Seul un compte parent peut être associé à un élève.")

    link = ParentStudent(
        tenant_id=ctx.tenant_id,
        parent_id=parent.id,
        student_id=student.id,
        relationship=data.relationship,
        is_primary=data.is_primary,
    )
    db.add(link)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Ce parent est déjà associé à cet élève.")

    audit_service.record(
        db, ctx, "student.link_parent", "student", student.id,
        new_values={"parent_id": parent.id, "relationship": data.relationship},
    )
    db.commit()
    db.refresh(link)
    return ParentLinkResponse.model_validate(link)


def is_parent_of(db: Session, ctx: RequestContext, student_id: uuid.UUID) -> bool:
    return db.execute(
        select(ParentStudent.id).where(
            ParentStudent.tenant_id == ctx.tenant_id,
            ParentStudent.parent_id == ctx.user_id,
            ParentStudent.student_id == student_id,
        )
    ).first() is not None


def parent_ids_of(db: Session, tenant_id: uuid.UUID, student_id: uuid.UUID) -> set[uuid.UUID]:
    """Identifiants des parents liés à un élève (destinataires temps réel)."""
    return set(db.execute(
        select(ParentStudent.parent_id).where(
            ParentStudent.tenant_id == tenant_id,
            ParentStudent.student_id == student_id,
        )
    ).scalars().all())

"""
Service métier pour les notes : catégories pondérées, devoirs, résultats et moyenne.

La moyenne pondérée d'un élève est calculée par catégorie (somme des points / somme
des maxima), puis pondérée par le poids de chaque catégorie et ramenée sur 100.
Seules les catégories comportant au moins une note entrent dans le calcul.
"""

import uuid
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import NotFoundError, ValidationError
from schoolconnect.models.grading import Assignment, AssignmentScore, GradeCategory
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.grading import (
    AssignmentCreate,
    AssignmentResponse,
    GradeCategoryCreate,
    GradeCategoryResponse,
    GradeEntry,
    GradeReport,
    ScoreResponse,
    ScoreUpsert,
)
from schoolconnect.services import audit_service, classroom_service, student_service

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------
# Catégories
# ----------------------------------------------------------------

def create_category(db: Session, ctx: RequestContext, data: GradeCategoryCreate) -> GradeCategoryResponse:
    classroom = classroom_service.get_staff_classroom(db, ctx, data.classroom_id)
    category = GradeCategory(
        tenant_id=ctx.tenant_id,
        classroom_id=classroom.id,
        name=data.name,
        weight=data.weight,
        description=data.description,
        is_active=True,
    )
    db.add(category)
    db.flush()
    audit_service.record(db, ctx, "grade_category.create", "grade_category", category.id, new_values=data.model_dump())
    db.commit()
    db.refresh(category)
    return GradeCategoryResponse.model_validate(category)


def list_categories(db: Session, ctx: RequestContext, classroom_id: Optional[uuid.UUID]) -> list[GradeCategoryResponse]:
    if classroom_id is None:
        raise ValidationError("Le paramètre classroomId est requis.")
    classroom = classroom_service.get_readable_classroom(db, ctx, classroom_id)
    categories = db.execute(
        select(GradeCategory)
        .where(
            GradeCategory.tenant_id == ctx.tenant_id,
            GradeCategory.classroom_id == classroom.id,
            GradeCategory.is_active.is_(True),
        )
        .order_by(GradeCategory.name)
    ).scalars().all()
    return [GradeCategoryResponse.model_validate(c) for c in categories]


# ----------------------------------------------------------------
# Devoirs
# ----------------------------------------------------------------

def list_assignments(
    db: Session,
    ctx: RequestContext,
    classroom_id: Optional[uuid.UUID],
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[AssignmentResponse]:
    """Devoirs actifs d'une classe. Le paramètre classroomId est obligatoire."""
    if classroom_id is None:
        raise ValidationError("Le paramètre classroomId est requis.")
    classroom = classroom_service.get_readable_classroom(db, ctx, classroom_id)
    assignments = db.execute(
        select(Assignment)
        .where(
            Assignment.tenant_id == ctx.tenant_id,
            Assignment.classroom_id == classroom.id,
            Assignment.is_active.is_(True),
        )
        .order_by(Assignment.due_date.desc())
        .limit(limit)
    ).scalars().all()
    return [AssignmentResponse.model_validate(a) for a in assignments]


def create_assignment(db: Session, ctx: RequestContext, data: AssignmentCreate) -> AssignmentResponse:
    """Crée un devoir. La catégorie doit appartenir à la même classe."""
    classroom = classroom_service.get_staff_classroom(db, ctx, data.classroom_id)
    category = db.execute(
        select(GradeCategory).where(
            GradeCategory.id == data.category_id,
            GradeCategory.tenant_id == ctx.tenant_id,
            GradeCategory.classroom_id == classroom.id,
            GradeCategory.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if category is None:
        raise NotFoundError("Catégorie de notes introuvable.")

    assignment = Assignment(tenant_id=ctx.tenant_id, is_active=True, **data.model_dump())
    db.add(assignment)
    db.flush()
    audit_service.record(db, ctx, "assignment.create", "assignment", assignment.id, new_values=data.model_dump())
    db.commit()
    db.refresh(assignment)
    return AssignmentResponse.model_validate(assignment)


# ----------------------------------------------------------------
# Résultats
# ----------------------------------------------------------------

def record_score(
    db: Session,
    ctx: RequestContext,
    assignment_id: uuid.UUID,
    student_id: uuid.UUID,
    data: ScoreUpsert,
) -> ScoreResponse:
    """
    Crée ou met à jour le résultat d'un élève pour un devoir.
    Le correcteur et la date de correction proviennent de la session.
    """
    assignment = db.execute(
        select(Assignment).where(
            Assignment.id == assignment_id,
            Assignment.tenant_id == ctx.tenant_id,
            Assignment.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFoundError("Devoir introuvable.")
    classroom_service.get_staff_classroom(db, ctx, assignment.classroom_id)
    student = student_service.get_tenant_student(db, ctx.tenant_id, student_id)

    if data.points is not None and data.points > float(assignment.max_points):
        raise ValidationError(f"Les points ne peuvent pas dépasser {float(assignment.max_points):g}.")

    score = db.execute(
        select(AssignmentScore).where(
            AssignmentScore.tenant_id == ctx.tenant_id,
            AssignmentScore.assignment_id == assignment.id,
            AssignmentScore.student_id == student.id,
        )
    ).scalar_one_or_none()
    old = ScoreResponse.model_validate(score).model_dump() if score else None
    if score is None:
        score = AssignmentScore(tenant_id=ctx.tenant_id, assignment_id=assignment.id, student_id=student.id)
        db.add(score)

    score.points = data.points
    score.feedback = data.feedback
    if data.submitted_at is not None:
        score.submitted_at = data.submitted_at
    score.graded_by = ctx.user_id
    score.graded_at = datetime.now(timezone.utc)
    db.flush()

    audit_service.record(
        db, ctx, "score.upsert", "assignment_score", score.id,
        old_values=old, new_values=data.model_dump(),
    )
    db.commit()
    db.refresh(score)
    return ScoreResponse.model_validate(score)


def _graded_rows(db: Session, tenant_id: uuid.UUID, student_id: uuid.UUID,
                 classroom_id: Optional[uuid.UUID] = None):
    query = (
        select(Assignment, GradeCategory, AssignmentScore)
        .join(GradeCategory, GradeCategory.id == Assignment.category_id)
        .join(AssignmentScore, AssignmentScore.assignment_id == Assignment.id)
        .where(
            Assignment.tenant_id == tenant_id,
            Assignment.is_active.is_(True),
            AssignmentScore.student_id == student_id,
        )
    )
    if classroom_id:
        query = query.where(Assignment.classroom_id == classroom_id)
    return db.execute(query.order_by(Assignment.due_date.desc())).all()


def weighted_average(db: Session, tenant_id: uuid.UUID, student_id: uuid.UUID,
                     classroom_id: Optional[uuid.UUID] = None) -> Optional[float]:
    """Moyenne pondérée en pourcentage, None si aucun devoir noté."""
    return _weighted_average(_graded_rows(db, tenant_id, student_id, classroom_id))


def _weighted_average(rows) -> Optional[float]:
    totals = defaultdict(lambda: [0.0, 0.0])  # category_id → [points, max]
    weights = {}
    for assignment, category, score in rows:
        if score.points is None:
            continue
        totals[category.id][0] += float(score.points)
        totals[category.id][1] += float(assignment.max_points)
        weights[category.id] = float(category.weight)

    total_weight = sum(weights.values())
    if not totals or total_weight <= 0:
        return None
    weighted = sum(
        (points / maximum) * weights[cid] for cid, (points, maximum) in totals.items() if maximum > 0
    )
    return round(weighted * 100 / total_weight, 2)


def student_grades(db: Session, ctx: RequestContext, student_id: uuid.UUID) -> GradeReport:
    """Relevé de notes d'un élève visible par l'appelant."""
    student = student_service.get_visible_student(db, ctx, student_id)
    rows = _graded_rows(db, ctx.tenant_id, student.id)
    entries = [
        GradeEntry(
            assignment_id=assignment.id,
            assignment_title=assignment.title,
            category_name=category.name,
            points=float(score.points) if score.points is not None else None,
            max_points=float(assignment.max_points),
            feedback=score.feedback,
            graded_at=score.graded_at,
            due_date=assignment.due_date,
        )
        for assignment, category, score in rows
    ]
    return GradeReport(student_id=student.id, weighted_average=_weighted_average(rows), entries=entries)

"""
Service métier pour les demandes des parents.

Cycle de vie : pending → approved | rejected. Les deux décisions sont terminales :
toute nouvelle décision sur une demande traitée lève ConflictError (409).
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import ConflictError, NotFoundError, ValidationError
from schoolconnect.models.form_request import FORM_STATUSES, FormRequest
from schoolconnect.models.student import Student
from schoolconnect.models.user import User
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.form_request import FormRequestCreate, FormRequestProcess, FormRequestResponse
from schoolconnect.services import audit_service, student_service

logger = logging.getLogger(__name__)


def _visible_query(ctx: RequestContext):
    query = select(FormRequest).where(FormRequest.tenant_id == ctx.tenant_id)
    if ctx.role == "parent":
        query = query.where(FormRequest.parent_id == ctx.user_id)
    return query


def list_forms(
    db: Session,
    ctx: RequestContext,
    status: Optional[str] = None,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[FormRequestResponse]:
    """Demandes visibles (parent : les siennes ; personnel : toutes), plus récentes d'abord."""
    query = _visible_query(ctx)
    if status:
        if status not in FORM_STATUSES:
            raise ValidationError(f"Statut invalide. Valeurs acceptées : {list(FORM_STATUSES)}")
        query = query.where(FormRequest.status == status)
    forms = db.execute(query.order_by(FormRequest.created_at.desc()).limit(limit)).scalars().all()
    return [FormRequestResponse.model_validate(f) for f in forms]


def _get_form(db: Session, ctx: RequestContext, form_id: uuid.UUID) -> FormRequest:
    form = db.execute(_visible_query(ctx).where(FormRequest.id == form_id)).scalar_one_or_none()
    if form is None:
        raise NotFoundError("Demande introuvable.")
    return form


def get_form(db: Session, ctx: RequestContext, form_id: uuid.UUID) -> FormRequestResponse:
    return FormRequestResponse.model_validate(_get_form(db, ctx, form_id))


def create_form(db: Session, ctx: RequestContext, data: FormRequestCreate) -> FormRequestResponse:
    """Dépose une demande pour un enfant lié au parent connecté. Statut initial : pending."""
    if not student_service.is_parent_of(db, ctx, data.student_id):
        raise NotFoundError("Élève introuvable.")
    if data.request_date and data.end_date and data.end_date < data.request_date:
        raise ValidationError("La date de fin doit être postérieure à la date de début.")

    form = FormRequest(
        tenant_id=ctx.tenant_id,
        parent_id=ctx.user_id,
        status="pending",
        **data.model_dump(),
    )
    db.add(form)
    db.flush()
    audit_service.record(db, ctx, "form.create", "form_request", form.id, new_values=data.model_dump())
    db.commit()
    db.refresh(form)
    return FormRequestResponse.model_validate(form)


def process_form(
    db: Session,
    ctx: RequestContext,
    form_id: uuid.UUID,
    data: FormRequestProcess,
) -> tuple[FormRequestResponse, Optional[dict]]:
    """
    Accepte ou refuse une demande en attente.
    Retourne la demande et, si l'envoi d'emails est activé, les paramètres de
    l'email à envoyer au parent.
    """
    form = _get_form(db, ctx, form_id)
    if form.status != "pending":
        raise ConflictError(f"Demande déjà traitée (statut : {form.status}).")

    # la condition sur le statut départage deux décisions concurrentes
    result = db.execute(
        update(FormRequest)
        .where(
            FormRequest.id == form.id,
            FormRequest.tenant_id == ctx.tenant_id,
            FormRequest.status == "pending",
        )
        .values(
            status=data.status,
            admin_notes=data.admin_notes,
            processed_by=ctx.user_id,
            processed_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        db.refresh(form)
        raise ConflictError(f"Demande déjà traitée (statut : {form.status}).")

    audit_service.record(
        db, ctx, "form.process", "form_request", form.id,
        old_values={"status": "pending"}, new_values=data.model_dump(),
    )
    db.commit()
    db.refresh(form)
    logger.info("Demande %s %s par %s", form.id, form.status, ctx.user_id)

    email = None
    if settings.SMTP_ENABLED:
        parent = db.get(User, form.parent_id)
        student = db.get(Student, form.student_id)
        if parent is not None and student is not None:
            email = {
                "to_email": parent.email,
                "parent_name": f"{parent.first_name} {parent.last_name}",
                "student_name": f"{student.first_name} {student.last_name}",
                "form_title": form.title,
                "status": form.status,
                "admin_notes": form.admin_notes,
            }
    return FormRequestResponse.model_validate(form), email


def count_pending(db: Session, ctx: RequestContext) -> int:
    """Demandes en attente visibles par l'appelant."""
    query = select(func.count()).select_from(FormRequest).where(
        FormRequest.tenant_id == ctx.tenant_id,
        FormRequest.status == "pending",
    )
    if ctx.role == "parent":
        query = query.where(FormRequest.parent_id == ctx.user_id)
    return db.execute(query).scalar() or 0

"""
Router pour les demandes des parents (sortie anticipée, maladie, autorisation).
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.form_request import FormRequestCreate, FormRequestProcess, FormRequestResponse
from schoolconnect.services import email_service, form_service

router = APIRouter(prefix="/api/forms", tags=["Demandes"])


@router.get("", response_model=List[FormRequestResponse], summary="Lister les demandes")
def list_forms(
    status: Optional[str] = Query(None),
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("forms", "read")),
    db: Session = Depends(get_db),
):
    """Parent : ses demandes. Personnel : toutes les demandes du tenant."""
    return form_service.list_forms(db, ctx, status, limit)


@router.post("", response_model=FormRequestResponse, status_code=201, summary="Déposer une demande")
def create_form(
    data: FormRequestCreate,
    ctx: RequestContext = Depends(require("forms", "create")),
    db: Session = Depends(get_db),
):
    return form_service.create_form(db, ctx, data)


@router.get("/{form_id}", response_model=FormRequestResponse, summary="Détail d'une demande")
def get_form(
    form_id: uuid.UUID,
    ctx: RequestContext = Depends(require("forms", "read")),
    db: Session = Depends(get_db),
):
    return form_service.get_form(db, ctx, form_id)


@router.put("/{form_id}", response_model=FormRequestResponse, summary="Traiter une demande")
def process_form(
    form_id: uuid.UUID,
    data: FormRequestProcess,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(require("forms", "process")),
    db: Session = Depends(get_db),
):
    """
    Accepte ou refuse une demande en attente.
    Une demande déjà traitée ne peut plus changer d'état (409).
    """
    form, email = form_service.process_form(db, ctx, form_id, data)
    if email is not None:
        background_tasks.add_task(email_service.notify_form_decision, **email)
    return form

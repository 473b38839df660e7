"""
Router pour les catégories de notes, les devoirs et les résultats.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.grading import (
    AssignmentCreate,
    AssignmentResponse,
    GradeCategoryCreate,
    GradeCategoryResponse,
    ScoreResponse,
    ScoreUpsert,
)
from schoolconnect.services import grading_service

router = APIRouter(prefix="/api", tags=["Notes"])


@router.get("/grade-categories", response_model=List[GradeCategoryResponse], summary="Catégories d'une classe")
def list_categories(
    classroom_id: Optional[uuid.UUID] = Query(None, alias="classroomId"),
    ctx: RequestContext = Depends(require("grading", "read")),
    db: Session = Depends(get_db),
):
    return grading_service.list_categories(db, ctx, classroom_id)


@router.post(
    "/grade-categories",
    response_model=GradeCategoryResponse,
    status_code=201,
    summary="Créer une catégorie de notes",
)
def create_category(
    data: GradeCategoryCreate,
    ctx: RequestContext = Depends(require("grading", "write")),
    db: Session = Depends(get_db),
):
    return grading_service.create_category(db, ctx, data)


@router.get("/assignments", response_model=List[AssignmentResponse], summary="Devoirs d'une classe")
def list_assignments(
    classroom_id: Optional[uuid.UUID] = Query(None, alias="classroomId"),
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("grading", "read")),
    db: Session = Depends(get_db),
):
    """Le paramètre `classroomId` est obligatoire (400 sinon)."""
    return grading_service.list_assignments(db, ctx, classroom_id, limit)


@router.post("/assignments", response_model=AssignmentResponse, status_code=201, summary="Créer un devoir")
def create_assignment(
    data: AssignmentCreate,
    ctx: RequestContext = Depends(require("grading", "write")),
    db: Session = Depends(get_db),
):
    return grading_service.create_assignment(db, ctx, data)


@router.put(
    "/assignments/{assignment_id}/scores/{student_id}",
    response_model=ScoreResponse,
    summary="Noter un élève",
)
def record_score(
    assignment_id: uuid.UUID,
    student_id: uuid.UUID,
    data: ScoreUpsert,
    ctx: RequestContext = Depends(require("grading", "write")),
    db: Session = Depends(get_db),
):
    """Crée ou remplace le résultat. Le correcteur est l'utilisateur connecté."""
    return grading_service.record_score(db, ctx, assignment_id, student_id, data)

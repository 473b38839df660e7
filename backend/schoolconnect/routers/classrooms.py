"""
Router pour les écoles, les classes et les inscriptions.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.classroom import (
    ClassroomCreate,
    ClassroomResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    SchoolCreate,
    SchoolResponse,
)
from schoolconnect.services import classroom_service

router = APIRouter(prefix="/api", tags=["Classes"])


@router.get("/schools", response_model=List[SchoolResponse], summary="Lister les écoles")
def list_schools(
    ctx: RequestContext = Depends(require("schools", "read")),
    db: Session = Depends(get_db),
):
    return classroom_service.list_schools(db, ctx.tenant_id)


@router.post("/schools", response_model=SchoolResponse, status_code=201, summary="Créer une école")
def create_school(
    data: SchoolCreate,
    ctx: RequestContext = Depends(require("schools", "create")),
    db: Session = Depends(get_db),
):
    return classroom_service.create_school(db, ctx, data)


@router.get("/classrooms", response_model=List[ClassroomResponse], summary="Lister les classes")
def list_classrooms(
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("classrooms", "read")),
    db: Session = Depends(get_db),
):
    """Classes actives avec leur nombre d'élèves. Un enseignant ne voit que les siennes."""
    return classroom_service.list_classrooms(db, ctx, limit)


@router.post("/classrooms", response_model=ClassroomResponse, status_code=201, summary="Créer une classe")
def create_classroom(
    data: ClassroomCreate,
    ctx: RequestContext = Depends(require("classrooms", "create")),
    db: Session = Depends(get_db),
):
    return classroom_service.create_classroom(db, ctx, data)


@router.post(
    "/classrooms/{classroom_id}/enrollments",
    response_model=List[EnrollmentResponse],
    status_code=201,
    summary="Inscrire des élèves dans une classe",
)
def enroll_students(
    classroom_id: uuid.UUID,
    data: EnrollmentCreate,
    ctx: RequestContext = Depends(require("classrooms", "enroll")),
    db: Session = Depends(get_db),
):
    """Les élèves déjà inscrits sont ignorés ; seules les nouvelles inscriptions sont retournées."""
    return classroom_service.enroll_students(db, ctx, classroom_id, data)


@router.delete(
    "/classrooms/{classroom_id}/enrollments/{student_id}",
    status_code=204,
    summary="Clôturer une inscription",
)
def end_enrollment(
    classroom_id: uuid.UUID,
    student_id: uuid.UUID,
    ctx: RequestContext = Depends(require("classrooms", "enroll")),
    db: Session = Depends(get_db),
):
    classroom_service.end_enrollment(db, ctx, classroom_id, student_id)

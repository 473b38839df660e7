"""
Router pour les élèves.
Listage et détail filtrés par rôle, création manuelle, lien parent,
import CSV et vues par élève (présences, notes, progression).
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.exceptions import ValidationError
from schoolconnect.schemas.attendance import AttendanceResponse
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.grading import GradeReport
from schoolconnect.schemas.progression import ProgressionResponse
from schoolconnect.schemas.student import (
    ParentLinkCreate,
    ParentLinkResponse,
    StudentCreate,
    StudentImportReport,
    StudentResponse,
)
from schoolconnect.services import (
    attendance_service,
    grading_service,
    progression_service,
    student_service,
)
from schoolconnect.services.student_import import parse_and_import_csv

router = APIRouter(prefix="/api/students", tags=["Élèves"])

ALLOWED_CONTENT_TYPES = {"text/csv", "text/plain", "application/vnd.ms-excel"}
MAX_FILE_SIZE_MB = 5


@router.get("", response_model=List[StudentResponse], summary="Lister les élèves")
def list_students(
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("students", "read")),
    db: Session = Depends(get_db),
):
    """
    Admin : tous les élèves. Enseignant : élèves inscrits dans ses classes.
    Parent : ses enfants. Tri alphabétique par nom puis prénom.
    """
    return student_service.list_students(db, ctx, limit)


@router.post("", response_model=StudentResponse, status_code=201, summary="Créer un élève")
def create_student(
    data: StudentCreate,
    ctx: RequestContext = Depends(require("students", "create")),
    db: Session = Depends(get_db),
):
    """Crée un élève, dans la limite de places de l'abonnement."""
    return student_service.create_student(db, ctx, data)


@router.post("/upload", response_model=StudentImportReport, summary="Importer des élèves via CSV")
async def upload_students(
    file: UploadFile = File(...),
    ctx: RequestContext = Depends(require("students", "import")),
    db: Session = Depends(get_db),
):
    """
    Importe une liste d'élèves depuis un fichier CSV.

    Format attendu du CSV :
    - Colonnes obligatoires : `matricule`, `nom`, `prenom`, `niveau`
    - Colonnes optionnelles : `date_naissance`, `classe`
    - Séparateur : virgule (`,`) ou point-virgule (`;`)
    - Encodage : UTF-8 (avec ou sans BOM)

    Retourne un rapport détaillant les insertions et les rejets.
    """
    if file.content_type not in ALLOWED_CONTENT_TYPES and not (file.filename or "").endswith(".csv"):
        raise ValidationError("Format invalide. Seuls les fichiers CSV sont acceptés.")

    content = await file.read()

    if len(content) > MAX_FILE_SIZE_MB * 1024 * 1024:
        raise ValidationError(f"Fichier trop volumineux. Taille maximale : {MAX_FILE_SIZE_MB} Mo.")

    if not content:
        raise ValidationError("Le fichier CSV est vide.")

    return parse_and_import_csv(content, db, ctx)


@router.get("/{student_id}", response_model=StudentResponse, summary="Détail d'un élève")
def get_student(
    student_id: uuid.UUID,
    ctx: RequestContext = Depends(require("students", "read")),
    db: Session = Depends(get_db),
):
    return student_service.get_student(db, ctx, student_id)


@router.post(
    "/{student_id}/parents",
    response_model=ParentLinkResponse,
    status_code=201,
    summary="Associer un parent à un élève",
)
def link_parent(
    student_id: uuid.UUID,
    data: ParentLinkCreate,
    ctx: RequestContext = Depends(require("students", "link_parent")),
    db: Session = Depends(get_db),
):
    return student_service.link_parent(db, ctx, student_id, data)


@router.get(
    "/{student_id}/attendance",
    response_model=List[AttendanceResponse],
    summary="Historique des présences d'un élève",
)
def student_attendance(
    student_id: uuid.UUID,
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("students", "read")),
    db: Session = Depends(get_db),
):
    return attendance_service.list_student_attendance(db, ctx, student_id, limit)


@router.get("/{student_id}/grades", response_model=GradeReport, summary="Relevé de notes d'un élève")
def student_grades(
    student_id: uuid.UUID,
    ctx: RequestContext = Depends(require("grading", "read")),
    db: Session = Depends(get_db),
):
    """Notes de l'élève et moyenne pondérée par catégorie."""
    return grading_service.student_grades(db, ctx, student_id)


@router.get(
    "/{student_id}/progression",
    response_model=List[ProgressionResponse],
    summary="Bilans de progression d'un élève",
)
def student_progression(
    student_id: uuid.UUID,
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("progression", "read")),
    db: Session = Depends(get_db),
):
    return progression_service.list_for_student(db, ctx, student_id, limit)

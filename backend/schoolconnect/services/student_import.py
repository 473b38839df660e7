"""
Service d'import CSV pour les élèves d'un tenant.
Gère le parsing, la validation, la détection de doublons et l'insertion en une transaction.

Colonne optionnelle `classe` : si présente, l'élève est inscrit dans la classe active
du même nom. Une classe inconnue rejette la ligne (les classes ne sont jamais créées
implicitement : elles exigent une école et un enseignant titulaire).
"""

import csv
import io
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolconnect.models.classroom import Classroom, Enrollment
from schoolconnect.models.student import Student
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.student import ImportRowError, StudentImportReport, StudentImportRow
from schoolconnect.services import audit_service, classroom_service, subscription_service

logger = logging.getLogger(__name__)

# Colonnes acceptées dans le CSV (noms en français, insensibles à la casse)
REQUIRED_COLUMNS = {"matricule", "nom", "prenom", "niveau"}
OPTIONAL_COLUMNS = {"date_naissance", "classe"}
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def _normalize_header(raw: str) -> str:
    """Normalise un nom de colonne : minuscules, sans espaces."""
    return raw.strip().lower()


def _detect_separator(sample: str) -> str:
    """Détecte le séparateur CSV (virgule ou point-virgule)."""
    if sample.count(";") >= sample.count(","):
        return ";"
    return ","


def _parse_date(raw: str):
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _empty_report(errors: list[ImportRowError]) -> StudentImportReport:
    return StudentImportReport(
        total_rows=0, inserted=0, rejected=len(errors),
        duplicates_in_file=0, duplicates_in_db=0, errors=errors,
    )


def parse_and_import_csv(content: bytes, db: Session, ctx: RequestContext) -> StudentImportReport:
    """
    Parse le CSV, valide chaque ligne, détecte les doublons et insère les élèves valides.

    Règles :
    - Colonnes requises : matricule, nom, prenom, niveau
    - Colonnes optionnelles : date_naissance (AAAA-MM-JJ ou JJ/MM/AAAA), classe
    - Doublon intra-fichier : même matricule (insensible à la casse)
    - Doublon BDD : matricule déjà utilisé dans le tenant
    - La limite de places de l'abonnement s'applique à l'ensemble des insertions
    """
    try:
        text = content.decode("utf-8-sig")  # utf-8-sig gère le BOM Excel
    except UnicodeDecodeError:
        return _empty_report([ImportRowError(row=0, content="", reason="Encodage invalide (UTF-8 attendu)")])

    lines = text.splitlines()
    separator = _detect_separator(lines[0] if lines else "")
    reader = csv.DictReader(io.StringIO(text), delimiter=separator)

    if reader.fieldnames is None:
        return _empty_report([ImportRowError(row=0, content="", reason="Fichier CSV vide ou illisible")])

    field_map = {_normalize_header(f): f for f in reader.fieldnames}
    missing = REQUIRED_COLUMNS - set(field_map)
    if missing:
        return _empty_report([ImportRowError(
            row=0, content=str(reader.fieldnames),
            reason=f"Colonnes manquantes : {', '.join(sorted(missing))}",
        )])

    def cell(row: dict, column: str) -> str:
        if column not in field_map:
            return ""
        return (row.get(field_map[column]) or "").strip()

    valid_rows: list[tuple[int, StudentImportRow]] = []
    errors: list[ImportRowError] = []
    seen_in_file: set[str] = set()
    duplicates_in_file = 0
    total_rows = 0

    for row_num, row in enumerate(reader, start=2):  # ligne 1 = header
        number = cell(row, "matricule")
        last_name = cell(row, "nom")
        first_name = cell(row, "prenom")
        grade = cell(row, "niveau")
        raw_birth = cell(row, "date_naissance")
        classe = cell(row, "classe")

        # Ligne vide
        if not any((number, last_name, first_name, grade, raw_birth, classe)):
            continue
        total_rows += 1
        content_str = f"{number}, {last_name}, {first_name}"

        if not number or not last_name or not first_name or not grade:
            errors.append(ImportRowError(
                row=row_num, content=content_str,
                reason="Matricule, nom, prénom ou niveau manquant",
            ))
            continue

        birth = None
        if raw_birth:
            birth = _parse_date(raw_birth)
            if birth is None:
                errors.append(ImportRowError(
                    row=row_num, content=content_str,
                    reason=f"Date de naissance invalide : {raw_birth}",
                ))
                continue

        key = number.lower()
        if key in seen_in_file:
            duplicates_in_file += 1
            errors.append(ImportRowError(row=row_num, content=content_str, reason="Doublon dans le fichier CSV"))
            continue
        seen_in_file.add(key)

        valid_rows.append((row_num, StudentImportRow(
            student_number=number,
            first_name=first_name,
            last_name=last_name,
            date_of_birth=birth,
            grade=grade,
            classroom_name=classe or None,
        )))

    # Doublons contre la BDD (une seule requête, bornée au tenant)
    existing = set()
    if valid_rows:
        existing = {
            n.lower() for n in db.execute(
                select(Student.student_number).where(Student.tenant_id == ctx.tenant_id)
            ).scalars().all()
        }

    classrooms: dict[str, Classroom] = {}
    to_insert: list[StudentImportRow] = []
    duplicates_in_db = 0
    for row_num, item in valid_rows:
        content_str = f"{item.student_number}, {item.last_name}, {item.first_name}"
        if item.student_number.lower() in existing:
            duplicates_in_db += 1
            errors.append(ImportRowError(
                row=row_num, content=content_str, reason="Élève déjà présent en base de données",
            ))
            continue
        if item.classroom_name:
            name_key = item.classroom_name.lower()
            if name_key not in classrooms:
                classroom = classroom_service.get_classroom_by_name(db, ctx.tenant_id, item.classroom_name)
                if classroom is None:
                    errors.append(ImportRowError(
                        row=row_num, content=content_str,
                        reason=f"Classe inconnue : {item.classroom_name}",
                    ))
                    continue
                classrooms[name_key] = classroom
        to_insert.append(item)

    if to_insert:
        subscription_service.ensure_seats_available(db, ctx.tenant_id, additional=len(to_insert))
        try:
            for item in to_insert:
                student = Student(
                    tenant_id=ctx.tenant_id,
                    student_number=item.student_number,
                    first_name=item.first_name,
                    last_name=item.last_name,
                    date_of_birth=item.date_of_birth,
                    grade=item.grade,
                    is_active=True,
                )
                db.add(student)
                db.flush()  # obtenir l'ID avant l'inscription
                if item.classroom_name:
                    db.add(Enrollment(
                        tenant_id=ctx.tenant_id,
                        student_id=student.id,
                        classroom_id=classrooms[item.classroom_name.lower()].id,
                        is_active=True,
                    ))
            subscription_service.refresh_student_count(db, ctx.tenant_id)
            audit_service.record(
                db, ctx, "student.import", "student",
                new_values={"inserted": [s.student_number for s in to_insert]},
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info(
        "Import CSV tenant %s : %d insérés, %d rejetés", ctx.tenant_id, len(to_insert), len(errors),
    )
    return StudentImportReport(
        total_rows=total_rows,
        inserted=len(to_insert),
        rejected=len(errors),
        duplicates_in_file=duplicates_in_file,
        duplicates_in_db=duplicates_in_db,
        errors=errors,
    )

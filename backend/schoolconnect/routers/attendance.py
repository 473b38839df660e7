"""
Router pour les présences journalières.
Chaque pointage est diffusé au personnel et aux parents de l'élève.
"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.policy import STAFF
from schoolconnect.realtime import manager
from schoolconnect.schemas.attendance import AttendanceCreate, AttendanceResponse, AttendanceUpdate
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.services import attendance_service, student_service

router = APIRouter(prefix="/api/attendance", tags=["Présences"])


def _notify(background_tasks: BackgroundTasks, db: Session, ctx: RequestContext, record: AttendanceResponse):
    background_tasks.add_task(
        manager.publish,
        ctx.tenant_id,
        "attendance_update",
        record,
        user_ids=student_service.parent_ids_of(db, ctx.tenant_id, record.student_id),
        roles=STAFF,
    )


@router.get("", response_model=List[AttendanceResponse], summary="Présences d'une journée")
def list_attendance(
    day: Optional[date] = Query(None, alias="date"),
    classroom_id: Optional[uuid.UUID] = Query(None, alias="classroomId"),
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("attendance", "read")),
    db: Session = Depends(get_db),
):
    """Présences du jour (ou de la date fournie), éventuellement filtrées par classe."""
    return attendance_service.list_attendance(db, ctx, day, classroom_id, limit)


@router.post("", response_model=AttendanceResponse, status_code=201, summary="Pointer une présence")
def create_attendance(
    data: AttendanceCreate,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(require("attendance", "write")),
    db: Session = Depends(get_db),
):
    """
    Enregistre la présence d'un élève pour une classe et une date.
    Une seule présence par (élève, classe, date) : un doublon retourne 409.
    """
    record = attendance_service.create_attendance(db, ctx, data)
    _notify(background_tasks, db, ctx, record)
    return record


@router.put("/{record_id}", response_model=AttendanceResponse, summary="Corriger une présence")
def update_attendance(
    record_id: uuid.UUID,
    data: AttendanceUpdate,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(require("attendance", "write")),
    db: Session = Depends(get_db),
):
    record = attendance_service.update_attendance(db, ctx, record_id, data)
    _notify(background_tasks, db, ctx, record)
    return record

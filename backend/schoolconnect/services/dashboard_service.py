"""
Indicateurs du tableau de bord, calculés pour l'utilisateur connecté.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.dashboard import DashboardStats
from schoolconnect.services import attendance_service, form_service, messaging_service, student_service


def get_stats(db: Session, ctx: RequestContext) -> DashboardStats:
    """
    - totalStudents  : élèves visibles par l'appelant (même règle que la liste)
    - presentToday   : élèves présents ou en retard aujourd'hui dans le tenant
    - pendingForms   : demandes en attente visibles par l'appelant
    - unreadMessages : messages reçus non lus
    """
    visible = student_service.visible_query(ctx).subquery()
    total_students = db.execute(select(func.count()).select_from(visible)).scalar() or 0

    return DashboardStats(
        total_students=total_students,
        present_today=attendance_service.present_today(db, ctx.tenant_id),
        pending_forms=form_service.count_pending(db, ctx),
        unread_messages=messaging_service.unread_count(db, ctx),
    )

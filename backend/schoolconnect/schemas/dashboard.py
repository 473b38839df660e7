"""
Schéma Pydantic pour les indicateurs du tableau de bord.
"""

from schoolconnect.schemas.base import CamelModel


class DashboardStats(CamelModel):
    total_students: int
    present_today: int
    pending_forms: int
    unread_messages: int

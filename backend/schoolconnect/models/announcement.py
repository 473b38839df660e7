"""
Modèles SQLAlchemy pour les annonces et leur audience.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid, func

from schoolconnect.database import Base

ANNOUNCEMENT_CATEGORIES = ("general", "events", "urgent", "academic")
AUDIENCE_TYPES = ("all", "all_parents", "all_teachers")


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(20), nullable=False)  # general, events, urgent, academic
    priority = Column(Integer, default=1, nullable=False)  # 1=basse, 2=moyenne, 3=haute
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)  # suppression logique
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AnnouncementAudience(Base):
    """Public ciblé. Aucune ligne = visible par tout le tenant."""
    __tablename__ = "announcement_audiences"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    announcement_id = Column(Uuid, ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False)
    audience_type = Column(String(50), nullable=False)  # all, all_parents, all_teachers
    audience_value = Column(Text, nullable=True)

"""
Modèle SQLAlchemy pour l'abonnement de facturation d'un tenant.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid, func

from schoolconnect.database import Base

SUBSCRIPTION_STATUSES = ("active", "inactive", "cancelled", "trial")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_name = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False)  # active, inactive, cancelled, trial
    student_limit = Column(Integer, nullable=False)
    current_students = Column(Integer, default=0, nullable=False)
    monthly_price = Column(Numeric(10, 2), nullable=False)
    billing_email = Column(Text, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    trial_ends_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

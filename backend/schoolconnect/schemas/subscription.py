"""
Schémas Pydantic pour la facturation (catalogue de formules et abonnement courant).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr

from schoolconnect.schemas.base import CamelModel


class PlanResponse(CamelModel):
    name: str
    student_limit: int
    monthly_price: float


class SubscriptionResponse(CamelModel):
    id: uuid.UUID
    plan_name: str
    status: str
    student_limit: int
    current_students: int
    monthly_price: float
    billing_email: str
    start_date: datetime
    end_date: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None


class SubscriptionUpdate(CamelModel):
    plan_name: str
    billing_email: Optional[EmailStr] = None

"""
Router de facturation : catalogue des formules et abonnement du tenant.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.subscription import PlanResponse, SubscriptionResponse, SubscriptionUpdate
from schoolconnect.services import subscription_service

router = APIRouter(prefix="/api/billing", tags=["Facturation"])


@router.get("/plans", response_model=List[PlanResponse], summary="Catalogue des formules")
def list_plans(ctx: RequestContext = Depends(require("billing", "read"))):
    return subscription_service.list_plans()


@router.get("/subscription", response_model=SubscriptionResponse, summary="Abonnement en cours")
def get_subscription(
    ctx: RequestContext = Depends(require("billing", "read")),
    db: Session = Depends(get_db),
):
    return subscription_service.get_subscription(db, ctx.tenant_id)


@router.put("/subscription", response_model=SubscriptionResponse, summary="Changer de formule")
def change_plan(
    data: SubscriptionUpdate,
    ctx: RequestContext = Depends(require("billing", "update")),
    db: Session = Depends(get_db),
):
    """La nouvelle formule doit couvrir le nombre d'élèves actifs (409 sinon)."""
    return subscription_service.change_plan(db, ctx, data)

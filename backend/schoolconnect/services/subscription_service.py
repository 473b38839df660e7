"""
Service de facturation : catalogue statique des formules, abonnement courant,
limite de places élèves et expiration des périodes d'essai.
"""

import uuid
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import ConflictError, NotFoundError, ValidationError
from schoolconnect.models.student import Student
from schoolconnect.models.subscription import Subscription
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.subscription import PlanResponse, SubscriptionResponse, SubscriptionUpdate
from schoolconnect.services import audit_service

logger = logging.getLogger(__name__)

# Catalogue des formules : nom → (places élèves, prix mensuel)
PLANS = {
    "starter": (200, Decimal("49.00")),
    "standard": (800, Decimal("149.00")),
    "premium": (3000, Decimal("399.00")),
}
TRIAL_PLAN = "starter"
CURRENT_STATUSES = ("active", "trial")
LAPSED_STATUSES = ("inactive", "cancelled")


def list_plans() -> list[PlanResponse]:
    return [
        PlanResponse(name=name, student_limit=limit, monthly_price=float(price))
        for name, (limit, price) in PLANS.items()
    ]


def start_trial(db: Session, tenant_id: uuid.UUID, billing_email: str) -> Subscription:
    """Ouvre l'abonnement d'essai d'un nouveau tenant (sans commit)."""
    now = datetime.now(timezone.utc)
    limit, price = PLANS[TRIAL_PLAN]
    subscription = Subscription(
        tenant_id=tenant_id,
        plan_name=TRIAL_PLAN,
        status="trial",
        student_limit=limit,
        current_students=0,
        monthly_price=price,
        billing_email=billing_email,
        start_date=now,
        trial_ends_at=now + timedelta(days=settings.TRIAL_DAYS),
    )
    db.add(subscription)
    return subscription


def get_current(db: Session, tenant_id: uuid.UUID) -> Optional[Subscription]:
    """Abonnement en cours (actif ou en essai) du tenant, s'il existe."""
    return db.execute(
        select(Subscription)
        .where(
            Subscription.tenant_id == tenant_id,
            Subscription.status.in_(CURRENT_STATUSES),
        )
        .order_by(Subscription.created_at.desc())
        .limit(1)
    ).scalar()


def get_latest(db: Session, tenant_id: uuid.UUID) -> Optional[Subscription]:
    """Dernier abonnement du tenant, quel que soit son statut (essai expiré compris)."""
    return db.execute(
        select(Subscription)
        .where(Subscription.tenant_id == tenant_id)
        .order_by(Subscription.created_at.desc())
        .limit(1)
    ).scalar()


def get_subscription(db: Session, tenant_id: uuid.UUID) -> SubscriptionResponse:
    subscription = get_current(db, tenant_id)
    if subscription is None:
        raise NotFoundError("Aucun abonnement en cours.")
    return SubscriptionResponse.model_validate(subscription)


def change_plan(db: Session, ctx: RequestContext, data: SubscriptionUpdate) -> SubscriptionResponse:
    """
    Change de formule. La nouvelle limite doit couvrir les élèves actifs.
    Un abonnement expiré ou résilié est réactivé par le changement.
    """
    if data.plan_name not in PLANS:
        raise ValidationError(f"Formule inconnue. Valeurs acceptées : {list(PLANS)}")

    subscription = get_latest(db, ctx.tenant_id)
    if subscription is None:
        raise NotFoundError("Aucun abonnement pour cet établissement.")

    limit, price = PLANS[data.plan_name]
    active_students = count_active_students(db, ctx.tenant_id)
    if active_students > limit:
        raise ConflictError(
            f"La formule {data.plan_name} est limitée à {limit} élèves ({active_students} actifs)."
        )

    old = SubscriptionResponse.model_validate(subscription).model_dump()
    subscription.plan_name = data.plan_name
    subscription.student_limit = limit
    subscription.monthly_price = price
    subscription.status = "active"
    subscription.trial_ends_at = None
    if data.billing_email:
        subscription.billing_email = data.billing_email

    audit_service.record(
        db, ctx, "subscription.update", "subscription", subscription.id,
        old_values=old, new_values=data.model_dump(),
    )
    db.commit()
    db.refresh(subscription)
    logger.info("Tenant %s : formule %s", ctx.tenant_id, data.plan_name)
    return SubscriptionResponse.model_validate(subscription)


def count_active_students(db: Session, tenant_id: uuid.UUID) -> int:
    return db.execute(
        select(func.count())
        .select_from(Student)
        .where(Student.tenant_id == tenant_id, Student.is_active.is_(True))
    ).scalar() or 0


def ensure_seats_available(db: Session, tenant_id: uuid.UUID, additional: int = 1) -> None:
    """
    Vérifie que l'abonnement courant autorise `additional` élèves de plus.
    Un tenant qui n'a jamais eu d'abonnement n'est pas limité ; un essai expiré
    ou un abonnement résilié bloque toute nouvelle inscription.
    """
    subscription = get_latest(db, tenant_id)
    if subscription is None:
        return
    if subscription.status in LAPSED_STATUSES:
        raise ConflictError("Abonnement inactif : choisissez une formule pour inscrire des élèves.")
    if count_active_students(db, tenant_id) + additional > subscription.student_limit:
        raise ConflictError(
            f"Limite de l'abonnement atteinte ({subscription.student_limit} élèves)."
        )


def refresh_student_count(db: Session, tenant_id: uuid.UUID) -> None:
    """Recopie le nombre d'élèves actifs dans l'abonnement courant (sans commit)."""
    subscription = get_current(db, tenant_id)
    if subscription is not None:
        db.flush()
        subscription.current_students = count_active_students(db, tenant_id)


def expire_trials(db: Session) -> int:
    """
    Passe en `inactive` les essais dont la date de fin est dépassée (tous tenants).
    Appelé par le planificateur. Retourne le nombre d'abonnements expirés.
    """
    result = db.execute(
        update(Subscription)
        .where(
            Subscription.status == "trial",
            Subscription.trial_ends_at.is_not(None),
            Subscription.trial_ends_at < datetime.now(timezone.utc),
        )
        .values(status="inactive")
    )
    db.commit()
    return result.rowcount or 0

"""
Planificateur APScheduler pour l'expiration des périodes d'essai.

Le job s'exécute toutes les heures et passe en `inactive` les abonnements
d'essai dont la date de fin est dépassée, tous tenants confondus.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from schoolconnect.database import SessionLocal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _expire_trials_scheduled() -> None:
    """
    Tâche planifiée : expire les essais échus.
    Import local pour éviter les imports circulaires.
    """
    from schoolconnect.services.subscription_service import expire_trials

    db = SessionLocal()
    try:
        expired = expire_trials(db)
        if expired:
            logger.info("%d période(s) d'essai expirée(s)", expired)
    except Exception as exc:
        db.rollback()
        logger.error("Erreur lors de l'expiration des essais : %s", exc, exc_info=True)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        _expire_trials_scheduled,
        trigger="interval",
        hours=1,
        id="trial_expiry_check",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré, expiration des essais vérifiée toutes les heures.")


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")

"""
Service d'authentification : hachage des mots de passe, jetons de session JWT,
connexion, inscription et révocation.
"""

import uuid
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import InvalidCredentials, InvalidSession, UserAlreadyExists
from schoolconnect.models.user import USER_ROLES, RevokedToken, User
from schoolconnect.schemas.auth import RegisterRequest, SessionIdentity, SessionResponse, UserPublic

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------
# Mots de passe
# ----------------------------------------------------------------

def hash_password(plain: str) -> str:
    """Hash bcrypt salé, coût fixé par BCRYPT_ROUNDS."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, password_hash: str) -> bool:
    """Compare un mot de passe à son hash. Un hash malformé ne correspond jamais."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Sert à garder un temps de réponse comparable quand l'email est inconnu
    return hash_password(uuid.uuid4().hex)


# ----------------------------------------------------------------
# Jetons de session
# ----------------------------------------------------------------

def issue_session(user_id: uuid.UUID, tenant_id: uuid.UUID, role: str) -> str:
    """Signe un jeton de session valable ACCESS_TOKEN_EXPIRE_MINUTES (24h par défaut)."""
    now = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "tenantId": str(tenant_id),
        "role": role,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_session(token: str) -> SessionIdentity:
    """
    Vérifie la signature et l'expiration d'un jeton (aucun accès BDD).
    La liste de révocation est consultée séparément (is_revoked).
    """
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "iat", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        raise InvalidSession("Session expirée.")
    except jwt.InvalidTokenError:
        raise InvalidSession()

    if claims.get("role") not in USER_ROLES:
        raise InvalidSession()

    try:
        return SessionIdentity(
            user_id=uuid.UUID(claims["userId"]),
            tenant_id=uuid.UUID(claims["tenantId"]),
            role=claims["role"],
            jti=claims["jti"],
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidSession()


def is_revoked(db: Session, jti: str) -> bool:
    return db.get(RevokedToken, jti) is not None


def logout(db: Session, identity: SessionIdentity) -> None:
    """Révoque le jeton courant jusqu'à son expiration naturelle. Idempotent."""
    if is_revoked(db, identity.jti):
        return
    db.add(RevokedToken(
        jti=identity.jti,
        tenant_id=identity.tenant_id,
        user_id=identity.user_id,
        expires_at=identity.expires_at,
    ))
    try:
        db.commit()
    except IntegrityError:
        # Déconnexion concurrente du même jeton : déjà révoqué
        db.rollback()
    logger.info("Session révoquée pour l'utilisateur %s", identity.user_id)


# ----------------------------------------------------------------
# Comptes
# ----------------------------------------------------------------

def get_user_by_email(db: Session, email: str, tenant_id: uuid.UUID) -> Optional[User]:
    return db.execute(
        select(User).where(User.tenant_id == tenant_id, User.email == email.lower())
    ).scalar_one_or_none()


def get_active_user(db: Session, user_id: uuid.UUID, tenant_id: uuid.UUID) -> Optional[User]:
    return db.execute(
        select(User).where(
            User.id == user_id,
            User.tenant_id == tenant_id,
            User.is_active.is_(True),
        )
    ).scalar_one_or_none()


def login(db: Session, email: str, password: str, tenant_id: uuid.UUID) -> SessionResponse:
    """
    Authentifie un utilisateur dans un tenant.
    Email inconnu, mot de passe erroné et compte désactivé lèvent la même erreur.
    """
    user = get_user_by_email(db, email, tenant_id)
    if user is None:
        verify_password(password, _dummy_hash())
        logger.warning("Échec de connexion (email inconnu) sur le tenant %s", tenant_id)
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash) or not user.is_active:
        logger.warning("Échec de connexion pour l'utilisateur %s", user.id)
        raise InvalidCredentials()

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    return SessionResponse(
        token=issue_session(user.id, user.tenant_id, user.role),
        user=UserPublic.model_validate(user),
    )


def register(db: Session, data: RegisterRequest, tenant_id: uuid.UUID) -> SessionResponse:
    """
    Crée un compte dans le tenant résolu (jamais celui envoyé par le client)
    et ouvre directement une session.
    """
    if get_user_by_email(db, data.email, tenant_id) is not None:
        raise UserAlreadyExists()

    user = User(
        tenant_id=tenant_id,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        phone=data.phone,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise UserAlreadyExists()
    db.refresh(user)

    logger.info("Compte créé : %s (%s) sur le tenant %s", user.id, user.role, tenant_id)
    return SessionResponse(
        token=issue_session(user.id, user.tenant_id, user.role),
        user=UserPublic.model_validate(user),
    )

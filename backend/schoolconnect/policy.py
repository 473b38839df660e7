"""
Politique d'autorisation déclarative : (ressource, action) → rôles autorisés.

Toutes les vérifications de rôle passent par ce tableau (via la dépendance
`require`). Un couple absent du tableau est refusé. Le contrôle du tenant est
fait avant, sans exception possible (voir dependencies.get_request_context).
"""

import logging

from schoolconnect.exceptions import RoleNotPermitted
from schoolconnect.schemas.auth import RequestContext

logger = logging.getLogger(__name__)

ADMIN = frozenset({"admin"})
STAFF = frozenset({"admin", "teacher"})
PARENT = frozenset({"parent"})
EVERYONE = frozenset({"admin", "teacher", "parent"})

POLICY = {
    ("users", "read"): ADMIN,
    ("users", "create"): ADMIN,
    ("users", "update"): ADMIN,
    ("users", "delete"): ADMIN,

    ("announcements", "read"): EVERYONE,
    ("announcements", "create"): STAFF,
    ("announcements", "update"): STAFF,
    ("announcements", "delete"): STAFF,

    ("attendance", "read"): STAFF,
    ("attendance", "write"): STAFF,

    ("students", "read"): EVERYONE,      # filtré ensuite par rôle (parent → ses enfants)
    ("students", "create"): ADMIN,
    ("students", "import"): ADMIN,
    ("students", "link_parent"): ADMIN,

    ("schools", "read"): STAFF,
    ("schools", "create"): ADMIN,
    ("classrooms", "read"): STAFF,
    ("classrooms", "create"): ADMIN,
    ("classrooms", "enroll"): ADMIN,

    ("conversations", "read"): EVERYONE,
    ("conversations", "create"): EVERYONE,
    ("messages", "read"): EVERYONE,
    ("messages", "create"): EVERYONE,

    ("grading", "read"): EVERYONE,       # relevés : filtrés par visibilité de l'élève
    ("grading", "write"): STAFF,

    ("forms", "read"): EVERYONE,         # parent → ses propres demandes
    ("forms", "create"): PARENT,
    ("forms", "process"): STAFF,

    ("progression", "read"): EVERYONE,
    ("progression", "create"): STAFF,

    ("dashboard", "read"): EVERYONE,

    ("billing", "read"): ADMIN,
    ("billing", "update"): ADMIN,

    ("audit", "read"): ADMIN,
}


def is_allowed(role: str, resource: str, action: str) -> bool:
    """Évalue la politique. Tout couple non déclaré est refusé."""
    return role in POLICY.get((resource, action), frozenset())


def check(ctx: RequestContext, resource: str, action: str) -> None:
    """Lève RoleNotPermitted si le rôle de la session n'est pas autorisé."""
    if not is_allowed(ctx.role, resource, action):
        logger.warning(
            "Accès refusé : rôle=%s ressource=%s action=%s utilisateur=%s",
            ctx.role, resource, action, ctx.user_id,
        )
        raise RoleNotPermitted()

"""
Base commune des schémas Pydantic.

Le client consomme du JSON en camelCase (viewCount, processedBy...) ;
les champs Python restent en snake_case et les deux formes sont acceptées en entrée.
Les clés inconnues (ex. tenantId envoyé par le client) sont ignorées.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


def not_blank(v: str) -> str:
    """Validation partagée : refuse les chaînes vides ou composées d'espaces."""
    if not v.strip():
        raise ValueError("Le champ ne peut pas être vide.")
    return v.strip()


def password_policy(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Le mot de passe doit contenir au moins 8 caractères.")
    # bcrypt ne considère que les 72 premiers octets
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Le mot de passe ne peut pas dépasser 72 octets.")
    return v


def not_null(v):
    """Champ optionnel d'une mise à jour : absent = inchangé, mais `null` explicite refusé."""
    if v is None:
        raise ValueError("Le champ ne peut pas être nul.")
    return v

"""
Taxonomie des erreurs métier.

Les services lèvent ces exceptions ; main.py les traduit en réponses
{"error": "..."} avec un code HTTP fixe. Les messages sont destinés au client
et ne doivent jamais contenir de détail interne.
"""

from typing import Any, Optional


class SchoolConnectError(Exception):
    """Erreur de base : porte un code HTTP et un message sûr pour le client."""

    status_code = 500
    default_message = "Une erreur interne est survenue."

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(SchoolConnectError):
    status_code = 400
    default_message = "Données invalides."


class TenantIdentifierMissing(ValidationError):
    default_message = "Identifiant d'établissement requis."


class AuthenticationError(SchoolConnectError):
    status_code = 401
    default_message = "Authentification requise."


class Unauthenticated(AuthenticationError):
    pass


class InvalidSession(AuthenticationError):
    default_message = "Session invalide ou expirée."


class InvalidCredentials(AuthenticationError):
    # Message identique pour email inconnu et mot de passe erroné (anti-énumération)
    default_message = "Identifiants invalides."


class AuthorizationError(SchoolConnectError):
    status_code = 403
    default_message = "Accès refusé."


class TenantMismatch(AuthorizationError):
    pass


class RoleNotPermitted(AuthorizationError):
    pass


class NotFoundError(SchoolConnectError):
    status_code = 404
    default_message = "Ressource introuvable."


class TenantNotFound(NotFoundError):
    default_message = "Établissement introuvable."


class ConflictError(SchoolConnectError):
    status_code = 409
    default_message = "Conflit avec une ressource existante."


class UserAlreadyExists(ConflictError):
    default_message = "Un utilisateur avec cet email existe déjà."


class InternalError(SchoolConnectError):
    pass

"""
Diffusion temps réel via WebSocket.

Le registre des connexions est partitionné par tenant : un événement n'est jamais
envoyé hors de son tenant, et seulement aux destinataires concernés (participants,
rôles de l'audience...). Une socket n'est enregistrée qu'après authentification.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from schoolconnect.schemas.auth import SessionIdentity

logger = logging.getLogger(__name__)

# Types d'événements serveur → client
EVENT_TYPES = ("auth_ok", "new_message", "announcement", "attendance_update", "error", "pong")


def envelope(event_type: str, data: Any = None) -> dict:
    """Trame standard {type, data, timestamp}."""
    return {
        "type": event_type,
        "data": jsonable_encoder(data),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ConnectionManager:
    """Registre en mémoire : tenant_id → {websocket: identité}."""

    def __init__(self):
        self._connections: dict[uuid.UUID, dict[WebSocket, SessionIdentity]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, identity: SessionIdentity) -> None:
        async with self._lock:
            self._connections.setdefault(identity.tenant_id, {})[websocket] = identity
        logger.info("WebSocket ouverte : utilisateur %s (tenant %s)", identity.user_id, identity.tenant_id)

    async def disconnect(self, websocket: WebSocket, tenant_id: uuid.UUID) -> None:
        async with self._lock:
            tenant_connections = self._connections.get(tenant_id)
            if tenant_connections is None:
                return
            tenant_connections.pop(websocket, None)
            if not tenant_connections:
                del self._connections[tenant_id]

    def connection_count(self, tenant_id: Optional[uuid.UUID] = None) -> int:
        if tenant_id is not None:
            return len(self._connections.get(tenant_id, {}))
        return sum(len(c) for c in self._connections.values())

    async def publish(
        self,
        tenant_id: uuid.UUID,
        event_type: str,
        data: Any,
        user_ids: Optional[Iterable[uuid.UUID]] = None,
        roles: Optional[Iterable[str]] = None,
        exclude_user_id: Optional[uuid.UUID] = None,
    ) -> int:
        """
        Envoie un événement aux connexions du tenant.
        Une connexion est retenue si son utilisateur figure dans `user_ids` ou si son
        rôle figure dans `roles` (sans filtre : tout le tenant). Les connexions en
        erreur sont retirées. Retourne le nombre de trames envoyées.
        """
        users = set(user_ids) if user_ids is not None else None
        wanted_roles = set(roles) if roles is not None else None

        async with self._lock:
            targets = list(self._connections.get(tenant_id, {}).items())

        frame = envelope(event_type, data)
        sent = 0
        broken = []
        for websocket, identity in targets:
            if exclude_user_id is not None and identity.user_id == exclude_user_id:
                continue
            if users is not None or wanted_roles is not None:
                by_user = users is not None and identity.user_id in users
                by_role = wanted_roles is not None and identity.role in wanted_roles
                if not (by_user or by_role):
                    continue
            try:
                await websocket.send_json(frame)
                sent += 1
            except Exception as exc:  # socket fermée côté client
                logger.info("Connexion WebSocket retirée (%s)", exc)
                broken.append(websocket)

        for websocket in broken:
            await self.disconnect(websocket, tenant_id)
        return sent


manager = ConnectionManager()

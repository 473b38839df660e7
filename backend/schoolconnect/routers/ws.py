"""
Point d'entrée WebSocket /ws.

Protocole :
1. le client envoie {"type": "auth", "token": "..."} (ou {"type": "auth", "data": {"token": ...}})
   dans les WS_AUTH_TIMEOUT_SECONDS suivant l'ouverture ;
2. le serveur répond {"type": "auth_ok", ...} et enregistre la connexion dans son tenant ;
3. {"type": "ping"} reçoit {"type": "pong"}.
Sans authentification valide, la socket est fermée (1008) avant toute diffusion.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from schoolconnect.config import settings
from schoolconnect.database import SessionLocal
from schoolconnect.exceptions import SchoolConnectError
from schoolconnect.realtime import envelope, manager
from schoolconnect.schemas.auth import SessionIdentity
from schoolconnect.services import auth_service, tenant_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Temps réel"])

session_factory = SessionLocal


def _extract_token(frame: dict) -> Optional[str]:
    if frame.get("type") != "auth":
        return None
    token = frame.get("token")
    if token is None and isinstance(frame.get("data"), dict):
        token = frame["data"].get("token")
    return token if isinstance(token, str) and token else None


def authenticate(token: str, tenant_identifier: Optional[str] = None) -> SessionIdentity:
    """Mêmes contrôles que get_identity (+ tenant si fourni en paramètre)."""
    identity = auth_service.verify_session(token)
    db = session_factory()
    try:
        if auth_service.is_revoked(db, identity.jti):
            raise SchoolConnectError("Session révoquée.")
        if auth_service.get_active_user(db, identity.user_id, identity.tenant_id) is None:
            raise SchoolConnectError("Compte inactif.")
        if tenant_identifier:
            tenant = tenant_service.resolve_tenant(db, tenant_identifier)
            if tenant.id != identity.tenant_id:
                raise SchoolConnectError("Tenant incohérent.")
    finally:
        db.close()
    return identity


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    try:
        raw = await asyncio.wait_for(websocket.receive_text(), timeout=settings.WS_AUTH_TIMEOUT_SECONDS)
        frame = json.loads(raw)
        token = _extract_token(frame) if isinstance(frame, dict) else None
        if token is None:
            raise SchoolConnectError("Trame d'authentification attendue.")
        identity = await run_in_threadpool(authenticate, token, websocket.query_params.get("tenant"))
    except WebSocketDisconnect:
        return
    except (asyncio.TimeoutError, json.JSONDecodeError, SchoolConnectError) as exc:
        logger.warning("WebSocket refusée : %s", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, identity)
    try:
        await websocket.send_json(envelope("auth_ok", {
            "userId": identity.user_id,
            "tenantId": identity.tenant_id,
            "role": identity.role,
        }))
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                frame = None
            if isinstance(frame, dict) and frame.get("type") == "ping":
                await websocket.send_json(envelope("pong"))
            else:
                await websocket.send_json(envelope("error", {"message": "Type de message non pris en charge."}))
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket, identity.tenant_id)
        logger.info("WebSocket fermée : utilisateur %s", identity.user_id)

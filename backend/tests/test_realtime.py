"""
Tests du temps réel : registre des connexions et point d'entrée /ws.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from starlette.websockets import WebSocketDisconnect

from factories import headers_for, make_tenant, make_user
from schoolconnect.config import settings
from schoolconnect.realtime import ConnectionManager, envelope, manager
from schoolconnect.schemas.auth import SessionIdentity
from schoolconnect.services import auth_service


class FakeSocket:
    def __init__(self):
        self.frames = []

    async def send_json(self, frame):
        self.frames.append(frame)


class BrokenSocket:
    async def send_json(self, frame):
        raise RuntimeError("socket fermée")


def identity(tenant_id, role="parent", user_id=None):
    return SessionIdentity(
        user_id=user_id or uuid.uuid4(),
        tenant_id=tenant_id,
        role=role,
        jti=uuid.uuid4().hex,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


# ================================================================
# ConnectionManager
# ================================================================

def test_enveloppe_standard():
    frame = envelope("pong")
    assert set(frame) == {"type", "data", "timestamp"}
    assert frame["type"] == "pong"
    assert frame["data"] is None


def test_diffusion_limitee_au_tenant():
    registry = ConnectionManager()
    tenant_a, tenant_b = uuid.uuid4(), uuid.uuid4()
    in_a, in_b = FakeSocket(), FakeSocket()

    async def scenario():
        await registry.connect(in_a, identity(tenant_a))
        await registry.connect(in_b, identity(tenant_b))
        return await registry.publish(tenant_a, "announcement", {"title": "Réunion"})

    assert asyncio.run(scenario()) == 1
    assert in_a.frames[0]["data"] == {"title": "Réunion"}
    assert in_b.frames == []


def test_diffusion_par_utilisateur_ou_role():
    registry = ConnectionManager()
    tenant = uuid.uuid4()
    parent, teacher, admin = FakeSocket(), FakeSocket(), FakeSocket()
    parent_identity = identity(tenant, "parent")

    async def scenario():
        await registry.connect(parent, parent_identity)
        await registry.connect(teacher, identity(tenant, "teacher"))
        await registry.connect(admin, identity(tenant, "admin"))
        return await registry.publish(
            tenant, "attendance_update", {"status": "late"},
            user_ids={parent_identity.user_id}, roles={"admin"},
        )

    assert asyncio.run(scenario()) == 2
    assert len(parent.frames) == 1
    assert teacher.frames == []
    assert len(admin.frames) == 1


def test_exclusion_de_l_emetteur():
    registry = ConnectionManager()
    tenant = uuid.uuid4()
    sender, other = identity(tenant), identity(tenant)
    sender_socket, other_socket = FakeSocket(), FakeSocket()

    async def scenario():
        await registry.connect(sender_socket, sender)
        await registry.connect(other_socket, other)
        return await registry.publish(
            tenant, "new_message", {}, user_ids={sender.user_id, other.user_id}, exclude_user_id=sender.user_id,
        )

    assert asyncio.run(scenario()) == 1
    assert sender_socket.frames == []


def test_connexion_cassee_retiree():
    registry = ConnectionManager()
    tenant = uuid.uuid4()

    async def scenario():
        await registry.connect(BrokenSocket(), identity(tenant))
        await registry.connect(FakeSocket(), identity(tenant))
        return await registry.publish(tenant, "announcement", {})

    assert asyncio.run(scenario()) == 1
    assert registry.connection_count(tenant) == 1


def test_deconnexion():
    registry = ConnectionManager()
    tenant = uuid.uuid4()
    socket = FakeSocket()

    async def scenario():
        await registry.connect(socket, identity(tenant))
        await registry.disconnect(socket, tenant)
        await registry.disconnect(socket, tenant)

    asyncio.run(scenario())
    assert registry.connection_count() == 0


# ================================================================
# Point d'entrée /ws
# ================================================================

@pytest.fixture
def sockets(session_factory):
    db = session_factory()
    tenant_a = make_tenant(db, "school-a")
    tenant_b = make_tenant(db, "school-b")
    users = {
        "parent": make_user(db, tenant_a, role="parent"),
        "teacher": make_user(db, tenant_a, role="teacher"),
        "admin": make_user(db, tenant_a, role="admin"),
        "admin_b": make_user(db, tenant_b, role="admin"),
        "inactive": make_user(db, tenant_a, role="parent", is_active=False),
    }
    data = {
        name: {
            "id": str(user.id),
            "headers": headers_for(user, tenant_b if name == "admin_b" else tenant_a),
        }
        for name, user in users.items()
    }
    db.close()
    return data


def token_of(entry):
    return entry["headers"]["Authorization"].split(" ", 1)[1]


def auth(ws, entry):
    ws.send_json({"type": "auth", "token": token_of(entry)})
    return ws.receive_json()


def assert_closed_with_policy_violation(ws):
    with pytest.raises(WebSocketDisconnect) as exc:
        ws.receive_json()
    assert exc.value.code == 1008


def test_ws_authentification_succes(api, sockets):
    with api.websocket_connect("/ws") as ws:
        frame = auth(ws, sockets["parent"])

        assert frame["type"] == "auth_ok"
        assert frame["data"]["userId"] == sockets["parent"]["id"]
        assert frame["data"]["role"] == "parent"
        assert "timestamp" in frame


def test_ws_jeton_dans_data(api, sockets):
    with api.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "data": {"token": token_of(sockets["teacher"])}})
        assert ws.receive_json()["type"] == "auth_ok"


def test_ws_ping_pong(api, sockets):
    with api.websocket_connect("/ws") as ws:
        auth(ws, sockets["parent"])
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"
        ws.send_text("pas du json")
        assert ws.receive_json()["type"] == "error"


def test_ws_jeton_invalide(api, sockets):
    with api.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "token": "faux.jeton.signe"})
        assert_closed_with_policy_violation(ws)


def test_ws_premiere_trame_non_auth(api, sockets):
    with api.websocket_connect("/ws") as ws:
        ws.send_json({"type": "ping"})
        assert_closed_with_policy_violation(ws)


def test_ws_compte_inactif(api, sockets):
    with api.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "token": token_of(sockets["inactive"])})
        assert_closed_with_policy_violation(ws)


def test_ws_session_revoquee(api, sockets):
    api.post("/api/auth/logout", headers=sockets["parent"]["headers"])
    with api.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "token": token_of(sockets["parent"])})
        assert_closed_with_policy_violation(ws)


def test_ws_tenant_incoherent(api, sockets):
    with api.websocket_connect("/ws?tenant=school-b") as ws:
        ws.send_json({"type": "auth", "token": token_of(sockets["parent"])})
        assert_closed_with_policy_violation(ws)


def test_ws_delai_d_authentification(api, sockets, monkeypatch):
    monkeypatch.setattr(settings, "WS_AUTH_TIMEOUT_SECONDS", 0.05)
    with api.websocket_connect("/ws") as ws:
        assert_closed_with_policy_violation(ws)


def test_ws_connexion_retiree_apres_fermeture(api, sockets):
    with api.websocket_connect("/ws") as ws:
        auth(ws, sockets["parent"])
        ws.send_json({"type": "ping"})
        ws.receive_json()
    assert manager.connection_count() == 0


def test_ws_message_aux_seuls_participants(api, sockets):
    conversation = api.post(
        "/api/conversations",
        json={"title": "Devoirs", "participantIds": [sockets["teacher"]["id"]]},
        headers=sockets["parent"]["headers"],
    ).json()

    with api.websocket_connect("/ws") as teacher_ws, \
            api.websocket_connect("/ws") as admin_ws, \
            api.websocket_connect("/ws") as parent_ws:
        auth(teacher_ws, sockets["teacher"])
        auth(admin_ws, sockets["admin"])
        auth(parent_ws, sockets["parent"])

        response = api.post(
            f"/api/conversations/{conversation['id']}/messages",
            json={"content": "Bonjour"}, headers=sockets["parent"]["headers"],
        )
        assert response.status_code == 201

        frame = teacher_ws.receive_json()
        assert frame["type"] == "new_message"
        assert frame["data"]["content"] == "Bonjour"
        assert frame["data"]["senderId"] == sockets["parent"]["id"]

        # ni l'admin (non participant) ni l'émetteur ne reçoivent le message
        for ws in (admin_ws, parent_ws):
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"


def test_ws_annonce_selon_l_audience(api, sockets):
    with api.websocket_connect("/ws") as parent_ws, \
            api.websocket_connect("/ws") as teacher_ws, \
            api.websocket_connect("/ws") as other_tenant_ws:
        auth(parent_ws, sockets["parent"])
        auth(teacher_ws, sockets["teacher"])
        auth(other_tenant_ws, sockets["admin_b"])

        response = api.post(
            "/api/announcements",
            json={"title": "Sortie", "content": "Vendredi au musée", "audiences": ["parent"]},
            headers=sockets["admin"]["headers"],
        )
        assert response.status_code == 201

        frame = parent_ws.receive_json()
        assert frame["type"] == "announcement"
        assert frame["data"]["title"] == "Sortie"

        for ws in (teacher_ws, other_tenant_ws):
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

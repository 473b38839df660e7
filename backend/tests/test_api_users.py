"""
Scénario de bout en bout : gestion des utilisateurs par un administrateur,
consultation du journal d'audit, isolation entre school-a et school-b.
"""

import pytest

from factories import PASSWORD, headers_for, make_tenant, make_user


@pytest.fixture
def schools(session_factory):
    db = session_factory()
    tenant_a = make_tenant(db, "school-a")
    tenant_b = make_tenant(db, "school-b")
    admin_a = make_user(db, tenant_a, role="admin", email="admin@school-a.org")
    admin_b = make_user(db, tenant_b, role="admin", email="admin@school-b.org")
    parent_a = make_user(db, tenant_a, role="parent", email="parent@school-a.org")
    make_user(db, tenant_b, role="teacher", email="teacher@school-b.org")
    data = {
        "admin_a": headers_for(admin_a, tenant_a),
        "admin_b": headers_for(admin_b, tenant_b),
        "parent_a": headers_for(parent_a, tenant_a),
        "admin_a_id": str(admin_a.id),
        "parent_a_id": str(parent_a.id),
    }
    db.close()
    return data


NEW_TEACHER = {
    "email": "Prof@School-A.org",
    "password": PASSWORD,
    "firstName": "Claire",
    "lastName": "Lambert",
    "role": "teacher",
}


def test_liste_limitee_au_tenant(api, schools):
    response = api.get("/api/users", headers=schools["admin_a"])

    assert response.status_code == 200
    emails = {u["email"] for u in response.json()}
    assert emails == {"admin@school-a.org", "parent@school-a.org"}


def test_liste_filtree_par_role(api, schools):
    response = api.get("/api/users?role=parent", headers=schools["admin_a"])
    assert [u["email"] for u in response.json()] == ["parent@school-a.org"]


def test_liste_refusee_au_parent(api, schools):
    response = api.get("/api/users", headers=schools["parent_a"])
    assert response.status_code == 403


def test_creation_puis_connexion(api, schools):
    response = api.post("/api/users", json=NEW_TEACHER, headers=schools["admin_a"])

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "prof@school-a.org"
    assert body["firstName"] == "Claire"
    assert "password" not in body and "passwordHash" not in body

    login = api.post(
        "/api/auth/login", json={"email": "prof@school-a.org", "password": PASSWORD},
        headers={"X-Tenant": "school-a"},
    )
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "teacher"


def test_creation_email_existant(api, schools):
    payload = dict(NEW_TEACHER, email="parent@school-a.org")
    response = api.post("/api/users", json=payload, headers=schools["admin_a"])
    assert response.status_code == 409


def test_meme_email_dans_deux_tenants(api, schools):
    payload = dict(NEW_TEACHER, email="teacher@school-b.org")
    response = api.post("/api/users", json=payload, headers=schools["admin_a"])
    assert response.status_code == 201


def test_role_invalide(api, schools):
    payload = dict(NEW_TEACHER, role="superadmin")
    response = api.post("/api/users", json=payload, headers=schools["admin_a"])
    assert response.status_code == 400
    assert response.json()["error"] == "Données invalides."


def test_mise_a_jour_partielle(api, schools):
    response = api.put(
        f"/api/users/{schools['parent_a_id']}", json={"phone": "0470 12 34 56"}, headers=schools["admin_a"],
    )

    assert response.status_code == 200
    assert response.json()["phone"] == "0470 12 34 56"
    assert response.json()["firstName"] == "Parent"


def test_mise_a_jour_prenom_nul(api, schools):
    response = api.put(
        f"/api/users/{schools['parent_a_id']}", json={"firstName": None}, headers=schools["admin_a"],
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "firstName"
    # rien n'a été écrit
    users = api.get("/api/users?role=parent", headers=schools["admin_a"]).json()
    assert users[0]["firstName"] == "Parent"


def test_admin_ne_retire_pas_son_role(api, schools):
    response = api.put(
        f"/api/users/{schools['admin_a_id']}", json={"role": "teacher"}, headers=schools["admin_a"],
    )
    assert response.status_code == 400


def test_desactivation_coupe_les_sessions(api, schools):
    response = api.delete(f"/api/users/{schools['parent_a_id']}", headers=schools["admin_a"])
    assert response.status_code == 204

    assert api.get("/api/auth/me", headers=schools["parent_a"]).status_code == 401
    listing = api.get("/api/users", headers=schools["admin_a"]).json()
    assert schools["parent_a_id"] not in {u["id"] for u in listing}
    listing = api.get("/api/users?includeInactive=true", headers=schools["admin_a"]).json()
    assert schools["parent_a_id"] in {u["id"] for u in listing}


def test_desactivation_de_soi_refusee(api, schools):
    response = api.delete(f"/api/users/{schools['admin_a_id']}", headers=schools["admin_a"])
    assert response.status_code == 400


def test_utilisateur_d_un_autre_tenant(api, schools):
    response = api.get(f"/api/users/{schools['parent_a_id']}", headers=schools["admin_b"])
    assert response.status_code == 404
    response = api.delete(f"/api/users/{schools['parent_a_id']}", headers=schools["admin_b"])
    assert response.status_code == 404


# ================================================================
# Journal d'audit
# ================================================================

def test_journal_apres_creation(api, schools):
    created = api.post("/api/users", json=NEW_TEACHER, headers=schools["admin_a"]).json()

    response = api.get("/api/audit-logs?entityType=user", headers=schools["admin_a"])

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["action"] == "user.create"
    assert entries[0]["entityId"] == created["id"]
    assert entries[0]["userId"] == schools["admin_a_id"]
    assert "password" not in entries[0]["newValues"]
    assert entries[0]["ipAddress"] == "testclient"


def test_journal_isole_par_tenant(api, schools):
    api.post("/api/users", json=NEW_TEACHER, headers=schools["admin_a"])

    response = api.get("/api/audit-logs", headers=schools["admin_b"])

    assert response.status_code == 200
    assert response.json() == []


def test_journal_refuse_au_parent(api, schools):
    assert api.get("/api/audit-logs", headers=schools["parent_a"]).status_code == 403

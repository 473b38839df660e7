"""
Tests du cycle de vie des demandes : pending → approved | rejected (terminaux).
"""

import pytest

from factories import ctx_for, link, make_student, make_tenant, make_user
from schoolconnect.config import settings
from schoolconnect.exceptions import ConflictError, NotFoundError, ValidationError
from schoolconnect.models.form_request import FormRequest
from schoolconnect.schemas.form_request import FormRequestCreate, FormRequestProcess
from schoolconnect.services import form_service


@pytest.fixture
def family(db_session):
    tenant = make_tenant(db_session)
    parent = make_user(db_session, tenant, role="parent", email="maman@school-a.org")
    other_parent = make_user(db_session, tenant, role="parent")
    student = make_student(db_session, tenant)
    link(db_session, parent, student)
    return {
        "parent": ctx_for(parent),
        "other_parent": ctx_for(other_parent),
        "teacher": ctx_for(make_user(db_session, tenant, role="teacher")),
        "student_id": student.id,
    }


def submit(db, family):
    data = FormRequestCreate(
        student_id=family["student_id"], form_type="early_pickup", title="Rendez-vous dentiste", reason="15h30",
    )
    return form_service.create_form(db, family["parent"], data)


def test_creation_en_attente(db_session, family):
    form = submit(db_session, family)

    assert form.status == "pending"
    assert form.parent_id == family["parent"].user_id
    assert form.processed_by is None


def test_creation_enfant_non_lie(db_session, family):
    data = FormRequestCreate(
        student_id=family["student_id"], form_type="sick_leave", title="Grippe", reason="Fièvre",
    )
    with pytest.raises(NotFoundError):
        form_service.create_form(db_session, family["other_parent"], data)


def test_type_invalide():
    with pytest.raises(ValueError):
        FormRequestCreate(student_id="00000000-0000-0000-0000-000000000000",
                          form_type="vacances", title="t", reason="r")


def test_approbation(db_session, family):
    form = submit(db_session, family)

    processed, email = form_service.process_form(
        db_session, family["teacher"], form.id, FormRequestProcess(status="approved", admin_notes="OK"),
    )

    assert processed.status == "approved"
    assert processed.processed_by == family["teacher"].user_id
    assert processed.processed_at is not None
    assert processed.admin_notes == "OK"
    assert email is None  # SMTP désactivé


@pytest.mark.parametrize("first, second", [
    ("approved", "rejected"),
    ("rejected", "approved"),
    ("approved", "approved"),
])
def test_etat_terminal_conflit(db_session, family, first, second):
    form = submit(db_session, family)
    form_service.process_form(db_session, family["teacher"], form.id, FormRequestProcess(status=first))

    with pytest.raises(ConflictError):
        form_service.process_form(db_session, family["teacher"], form.id, FormRequestProcess(status=second))

    assert form_service.get_form(db_session, family["teacher"], form.id).status == first


def test_decision_concurrente(db_session, session_factory, family, monkeypatch):
    """Une autre décision est enregistrée entre la lecture et l'écriture : la seconde perd."""
    form = submit(db_session, family)
    read_form = form_service._get_form

    def read_then_rival_decision(db, ctx, form_id):
        loaded = read_form(db, ctx, form_id)
        other = session_factory()
        rival = other.get(FormRequest, form_id)
        rival.status = "rejected"
        other.commit()
        other.close()
        return loaded

    monkeypatch.setattr(form_service, "_get_form", read_then_rival_decision)

    with pytest.raises(ConflictError):
        form_service.process_form(db_session, family["teacher"], form.id, FormRequestProcess(status="approved"))

    monkeypatch.undo()
    assert form_service.get_form(db_session, family["teacher"], form.id).status == "rejected"


def test_retour_en_attente_interdit():
    with pytest.raises(ValueError):
        FormRequestProcess(status="pending")


def test_parent_ne_voit_que_ses_demandes(db_session, family):
    submit(db_session, family)

    assert len(form_service.list_forms(db_session, family["parent"])) == 1
    assert form_service.list_forms(db_session, family["other_parent"]) == []
    assert len(form_service.list_forms(db_session, family["teacher"], status="pending")) == 1


def test_filtre_statut_invalide(db_session, family):
    with pytest.raises(ValidationError):
        form_service.list_forms(db_session, family["teacher"], status="archived")


def test_email_prepare_si_smtp_actif(db_session, family, monkeypatch):
    monkeypatch.setattr(settings, "SMTP_ENABLED", True)
    form = submit(db_session, family)

    _, email = form_service.process_form(
        db_session, family["teacher"], form.id, FormRequestProcess(status="rejected", admin_notes="Justificatif manquant"),
    )

    assert email["to_email"] == "maman@school-a.org"
    assert email["status"] == "rejected"
    assert email["student_name"] == "Jean Dupont"


def test_compteur_demandes_en_attente(db_session, family):
    submit(db_session, family)
    form = submit(db_session, family)
    form_service.process_form(db_session, family["teacher"], form.id, FormRequestProcess(status="approved"))

    assert form_service.count_pending(db_session, family["teacher"]) == 1
    assert form_service.count_pending(db_session, family["other_parent"]) == 0

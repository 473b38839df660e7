"""
Tests du service élèves : visibilité par rôle, création, lien parent ↔ élève.
"""

import pytest

from factories import ctx_for, enroll, link, make_classroom, make_student, make_tenant, make_user
from schoolconnect.exceptions import ConflictError, NotFoundError, ValidationError
from schoolconnect.models.classroom import Enrollment
from schoolconnect.schemas.student import EmergencyContact, ParentLinkCreate, StudentCreate
from schoolconnect.services import student_service, subscription_service


@pytest.fixture
def school(db_session):
    tenant = make_tenant(db_session)
    teacher = make_user(db_session, tenant, role="teacher")
    other_teacher = make_user(db_session, tenant, role="teacher")
    parent = make_user(db_session, tenant, role="parent")
    mine = make_student(db_session, tenant, number="A001", last_name="Albert")
    other = make_student(db_session, tenant, number="A002", last_name="Bernard")
    classroom = make_classroom(db_session, tenant, teacher)
    enroll(db_session, classroom, mine)
    link(db_session, parent, mine)
    return {
        "tenant": tenant,
        "admin": ctx_for(make_user(db_session, tenant, role="admin")),
        "teacher": ctx_for(teacher),
        "other_teacher": ctx_for(other_teacher),
        "parent": ctx_for(parent),
        "mine": mine.id,
        "other": other.id,
        "classroom": classroom.id,
    }


# ================================================================
# Visibilité
# ================================================================

def test_admin_voit_tous_les_eleves(db_session, school):
    students = student_service.list_students(db_session, school["admin"])
    assert [s.last_name for s in students] == ["Albert", "Bernard"]


def test_enseignant_voit_ses_eleves(db_session, school):
    students = student_service.list_students(db_session, school["teacher"])
    assert [s.id for s in students] == [school["mine"]]


def test_enseignant_sans_classe(db_session, school):
    assert student_service.list_students(db_session, school["other_teacher"]) == []


def test_inscription_terminee_masque_l_eleve(db_session, school):
    enrollment = db_session.query(Enrollment).filter_by(student_id=school["mine"]).one()
    enrollment.is_active = False
    db_session.commit()

    assert student_service.list_students(db_session, school["teacher"]) == []


def test_parent_voit_ses_enfants(db_session, school):
    students = student_service.list_students(db_session, school["parent"])
    assert [s.id for s in students] == [school["mine"]]


def test_parent_eleve_non_lie_introuvable(db_session, school):
    with pytest.raises(NotFoundError):
        student_service.get_student(db_session, school["parent"], school["other"])


def test_limite_de_resultats(db_session, school):
    assert len(student_service.list_students(db_session, school["admin"], limit=1)) == 1


def test_is_parent_of(db_session, school):
    assert student_service.is_parent_of(db_session, school["parent"], school["mine"])
    assert not student_service.is_parent_of(db_session, school["parent"], school["other"])


# ================================================================
# Création
# ================================================================

def test_creation_eleve_succes(db_session, school):
    data = StudentCreate(
        student_number="A100", first_name="Léa", last_name="Petit", grade="5",
        emergency_contact=EmergencyContact(name="Anne Petit", phone="0470", relationship="mère"),
        medical_info="Allergie aux arachides",
    )

    result = student_service.create_student(db_session, school["admin"], data)

    assert result.student_number == "A100"
    assert result.emergency_contact.name == "Anne Petit"
    assert result.is_active is True


def test_creation_matricule_duplique(db_session, school):
    data = StudentCreate(student_number="A001", first_name="Léa", last_name="Petit", grade="5")
    with pytest.raises(ConflictError):
        student_service.create_student(db_session, school["admin"], data)


def test_meme_matricule_autre_tenant(db_session, school):
    other_admin = make_user(db_session, make_tenant(db_session, "school-b"), role="admin")
    data = StudentCreate(student_number="A001", first_name="Léa", last_name="Petit", grade="5")

    result = student_service.create_student(db_session, ctx_for(other_admin), data)

    assert result.student_number == "A001"


def test_creation_limite_abonnement(db_session, school):
    subscription = subscription_service.start_trial(db_session, school["tenant"].id, "billing@school-a.org")
    subscription.student_limit = 2
    db_session.commit()

    data = StudentCreate(student_number="A100", first_name="Léa", last_name="Petit", grade="5")
    with pytest.raises(ConflictError):
        student_service.create_student(db_session, school["admin"], data)


def test_matricule_vide_refuse():
    with pytest.raises(ValueError):
        StudentCreate(student_number="  ", first_name="Léa", last_name="Petit", grade="5")


# ================================================================
# Lien parent ↔ élève
# ================================================================

def test_lien_parent_succes(db_session, school):
    parent = make_user(db_session, school["tenant"], role="parent")

    result = student_service.link_parent(
        db_session, school["admin"], school["other"],
        ParentLinkCreate(parent_id=parent.id, relationship="guardian", is_primary=True),
    )

    assert result.parent_id == parent.id
    assert result.is_primary is True
    assert student_service.parent_ids_of(db_session, school["tenant"].id, school["other"]) == {parent.id}


def test_lien_parent_duplique(db_session, school):
    with pytest.raises(ConflictError):
        student_service.link_parent(
            db_session, school["admin"], school["mine"], ParentLinkCreate(parent_id=school["parent"].user_id),
        )


def test_lien_compte_non_parent(db_session, school):
    with pytest.raises(ValidationError):
        student_service.link_parent(
            db_session, school["admin"], school["other"], ParentLinkCreate(parent_id=school["teacher"].user_id),
        )


def test_lien_parent_autre_tenant(db_session, school):
    foreign = make_user(db_session, make_tenant(db_session, "school-b"), role="parent")
    with pytest.raises(NotFoundError):
        student_service.link_parent(
            db_session, school["admin"], school["other"], ParentLinkCreate(parent_id=foreign.id),
        )

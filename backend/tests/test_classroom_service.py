"""
Tests du service des écoles, classes et inscriptions.
"""

import pytest

from factories import ctx_for, make_student, make_tenant, make_user
from schoolconnect.exceptions import NotFoundError, ValidationError
from schoolconnect.schemas.classroom import ClassroomCreate, EnrollmentCreate, SchoolCreate
from schoolconnect.services import classroom_service


@pytest.fixture
def school(db_session):
    tenant = make_tenant(db_session)
    admin = ctx_for(make_user(db_session, tenant, role="admin"))
    teacher = make_user(db_session, tenant, role="teacher")
    created = classroom_service.create_school(db_session, admin, SchoolCreate(name="École du Centre"))
    return {
        "tenant": tenant,
        "admin": admin,
        "teacher": ctx_for(teacher),
        "parent": make_user(db_session, tenant, role="parent"),
        "school_id": created.id,
    }


def new_classroom(db, school, name="3A", capacity=None, teacher_id=None):
    return classroom_service.create_classroom(db, school["admin"], ClassroomCreate(
        school_id=school["school_id"],
        teacher_id=teacher_id or school["teacher"].user_id,
        name=name,
        grade="3",
        capacity=capacity,
        academic_year="2026-2027",
    ))


# ================================================================
# Écoles et classes
# ================================================================

def test_ecoles_du_tenant(db_session, school):
    other_admin = ctx_for(make_user(db_session, make_tenant(db_session, "school-b"), role="admin"))
    classroom_service.create_school(db_session, other_admin, SchoolCreate(name="École B"))

    schools = classroom_service.list_schools(db_session, school["tenant"].id)

    assert [s.name for s in schools] == ["École du Centre"]


def test_creation_classe_succes(db_session, school):
    classroom = new_classroom(db_session, school, capacity=25)

    assert classroom.name == "3A"
    assert classroom.capacity == 25
    assert classroom.nb_students == 0


def test_titulaire_non_enseignant(db_session, school):
    with pytest.raises(ValidationError):
        new_classroom(db_session, school, teacher_id=school["parent"].id)


def test_ecole_d_un_autre_tenant(db_session, school):
    other_admin = ctx_for(make_user(db_session, make_tenant(db_session, "school-b"), role="admin"))
    with pytest.raises(NotFoundError):
        classroom_service.create_classroom(db_session, other_admin, ClassroomCreate(
            school_id=school["school_id"], teacher_id=school["teacher"].user_id,
            name="X", grade="3", academic_year="2026-2027",
        ))


def test_enseignant_voit_ses_classes(db_session, school):
    other_teacher = make_user(db_session, school["tenant"], role="teacher")
    new_classroom(db_session, school, name="3A")
    new_classroom(db_session, school, name="4B", teacher_id=other_teacher.id)

    assert [c.name for c in classroom_service.list_classrooms(db_session, school["admin"])] == ["3A", "4B"]
    assert [c.name for c in classroom_service.list_classrooms(db_session, school["teacher"])] == ["3A"]


def test_classe_d_un_autre_enseignant(db_session, school):
    other_teacher = make_user(db_session, school["tenant"], role="teacher")
    classroom = new_classroom(db_session, school, teacher_id=other_teacher.id)

    with pytest.raises(NotFoundError):
        classroom_service.get_staff_classroom(db_session, school["teacher"], classroom.id)
    assert classroom_service.get_staff_classroom(db_session, school["admin"], classroom.id).id == classroom.id


def test_recherche_par_nom(db_session, school):
    classroom = new_classroom(db_session, school, name="3A")

    assert classroom_service.get_classroom_by_name(db_session, school["tenant"].id, " 3a ").id == classroom.id
    assert classroom_service.get_classroom_by_name(db_session, school["tenant"].id, "5C") is None


# ================================================================
# Inscriptions
# ================================================================

def test_inscription_succes(db_session, school):
    classroom = new_classroom(db_session, school)
    students = [make_student(db_session, school["tenant"]).id for _ in range(2)]

    created = classroom_service.enroll_students(
        db_session, school["admin"], classroom.id, EnrollmentCreate(student_ids=students),
    )

    assert {e.student_id for e in created} == set(students)
    assert classroom_service.list_classrooms(db_session, school["admin"])[0].nb_students == 2


def test_inscription_deja_inscrit_ignore(db_session, school):
    classroom = new_classroom(db_session, school)
    student = make_student(db_session, school["tenant"]).id
    classroom_service.enroll_students(db_session, school["admin"], classroom.id, EnrollmentCreate(student_ids=[student]))

    created = classroom_service.enroll_students(
        db_session, school["admin"], classroom.id, EnrollmentCreate(student_ids=[student, student]),
    )

    assert created == []


def test_inscription_capacite_depassee(db_session, school):
    classroom = new_classroom(db_session, school, capacity=1)
    students = [make_student(db_session, school["tenant"]).id for _ in range(2)]

    with pytest.raises(ValidationError):
        classroom_service.enroll_students(
            db_session, school["admin"], classroom.id, EnrollmentCreate(student_ids=students),
        )
    assert classroom_service.list_classrooms(db_session, school["admin"])[0].nb_students == 0


def test_inscription_eleve_d_un_autre_tenant(db_session, school):
    classroom = new_classroom(db_session, school)
    foreign = make_student(db_session, make_tenant(db_session, "school-b")).id
    local = make_student(db_session, school["tenant"]).id

    with pytest.raises(NotFoundError):
        classroom_service.enroll_students(
            db_session, school["admin"], classroom.id, EnrollmentCreate(student_ids=[local, foreign]),
        )
    assert classroom_service.list_classrooms(db_session, school["admin"])[0].nb_students == 0


def test_fin_d_inscription(db_session, school):
    classroom = new_classroom(db_session, school)
    student = make_student(db_session, school["tenant"]).id
    classroom_service.enroll_students(db_session, school["admin"], classroom.id, EnrollmentCreate(student_ids=[student]))

    classroom_service.end_enrollment(db_session, school["admin"], classroom.id, student)

    assert classroom_service.list_classrooms(db_session, school["admin"])[0].nb_students == 0
    with pytest.raises(NotFoundError):
        classroom_service.end_enrollment(db_session, school["admin"], classroom.id, student)


def test_liste_vide_refusee():
    with pytest.raises(ValueError):
        EnrollmentCreate(student_ids=[])

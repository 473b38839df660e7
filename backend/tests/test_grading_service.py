"""
Tests du service des notes : catégories, devoirs, correction et moyenne pondérée.
"""

import pytest

from factories import ctx_for, enroll, link, make_classroom, make_student, make_tenant, make_user
from schoolconnect.exceptions import NotFoundError, ValidationError
from schoolconnect.models.tenant import Tenant
from schoolconnect.models.user import User
from schoolconnect.schemas.grading import AssignmentCreate, GradeCategoryCreate, ScoreUpsert
from schoolconnect.services import grading_service


@pytest.fixture
def course(db_session):
    tenant = make_tenant(db_session)
    teacher = make_user(db_session, tenant, role="teacher")
    parent = make_user(db_session, tenant, role="parent")
    student = make_student(db_session, tenant)
    classroom = make_classroom(db_session, tenant, teacher)
    enroll(db_session, classroom, student)
    link(db_session, parent, student)
    return {
        "tenant_id": tenant.id,
        "teacher": ctx_for(teacher),
        "parent": ctx_for(parent),
        "outsider": ctx_for(make_user(db_session, tenant, role="parent")),
        "student_id": student.id,
        "classroom_id": classroom.id,
    }


def add_category(db, course, name, weight):
    return grading_service.create_category(
        db, course["teacher"], GradeCategoryCreate(classroom_id=course["classroom_id"], name=name, weight=weight),
    )


def add_assignment(db, course, category, title, max_points=20):
    return grading_service.create_assignment(
        db, course["teacher"],
        AssignmentCreate(
            classroom_id=course["classroom_id"], category_id=category.id, title=title, max_points=max_points,
        ),
    )


def grade(db, course, assignment, points):
    return grading_service.record_score(
        db, course["teacher"], assignment.id, course["student_id"], ScoreUpsert(points=points),
    )


def test_correction_horodatee(db_session, course):
    category = add_category(db_session, course, "Contrôles", 100)
    assignment = add_assignment(db_session, course, category, "Dictée")

    score = grade(db_session, course, assignment, 15)

    assert score.points == 15
    assert score.graded_by == course["teacher"].user_id
    assert score.graded_at is not None


def test_correction_remplace_la_precedente(db_session, course):
    category = add_category(db_session, course, "Contrôles", 100)
    assignment = add_assignment(db_session, course, category, "Dictée")

    first = grade(db_session, course, assignment, 12)
    second = grade(db_session, course, assignment, 16)

    assert first.id == second.id
    assert second.points == 16


def test_points_au_dela_du_maximum(db_session, course):
    category = add_category(db_session, course, "Contrôles", 100)
    assignment = add_assignment(db_session, course, category, "Dictée", max_points=10)

    with pytest.raises(ValidationError):
        grade(db_session, course, assignment, 12)


def test_moyenne_ponderee(db_session, course):
    """Devoirs 60 % (18/20) et contrôles 40 % (10/20) → 0.9*60 + 0.5*40 = 74."""
    homework = add_category(db_session, course, "Devoirs", 60)
    exams = add_category(db_session, course, "Contrôles", 40)
    grade(db_session, course, add_assignment(db_session, course, homework, "DM 1"), 18)
    grade(db_session, course, add_assignment(db_session, course, exams, "Contrôle 1"), 10)

    average = grading_service.weighted_average(db_session, course["tenant_id"], course["student_id"])

    assert average == 74.0


def test_moyenne_categories_notees_uniquement(db_session, course):
    homework = add_category(db_session, course, "Devoirs", 60)
    add_category(db_session, course, "Contrôles", 40)
    grade(db_session, course, add_assignment(db_session, course, homework, "DM 1"), 15)

    assert grading_service.weighted_average(db_session, course["tenant_id"], course["student_id"]) == 75.0


def test_moyenne_sans_note(db_session, course):
    assert grading_service.weighted_average(db_session, course["tenant_id"], course["student_id"]) is None


def test_releve_visible_par_le_parent(db_session, course):
    category = add_category(db_session, course, "Contrôles", 100)
    grade(db_session, course, add_assignment(db_session, course, category, "Dictée"), 14)

    report = grading_service.student_grades(db_session, course["parent"], course["student_id"])

    assert report.weighted_average == 70.0
    assert report.entries[0].assignment_title == "Dictée"
    assert report.entries[0].category_name == "Contrôles"


def test_releve_refuse_aux_autres_parents(db_session, course):
    with pytest.raises(NotFoundError):
        grading_service.student_grades(db_session, course["outsider"], course["student_id"])


def test_parent_consulte_la_classe_de_son_enfant(db_session, course):
    category = add_category(db_session, course, "Contrôles", 100)
    add_assignment(db_session, course, category, "Dictée")

    categories = grading_service.list_categories(db_session, course["parent"], course["classroom_id"])
    assignments = grading_service.list_assignments(db_session, course["parent"], course["classroom_id"])

    assert [c.name for c in categories] == ["Contrôles"]
    assert [a.title for a in assignments] == ["Dictée"]


def test_classe_refusee_aux_autres_parents(db_session, course):
    add_assignment(db_session, course, add_category(db_session, course, "Contrôles", 100), "Dictée")

    with pytest.raises(NotFoundError):
        grading_service.list_categories(db_session, course["outsider"], course["classroom_id"])
    with pytest.raises(NotFoundError):
        grading_service.list_assignments(db_session, course["outsider"], course["classroom_id"])


def test_liste_devoirs_sans_classe(db_session, course):
    with pytest.raises(ValidationError):
        grading_service.list_assignments(db_session, course["teacher"], None)


def test_devoir_classe_d_un_autre_tenant(db_session, course):
    category = add_category(db_session, course, "Contrôles", 100)
    other_teacher = make_user(db_session, make_tenant(db_session, "school-b"), role="teacher")
    with pytest.raises(NotFoundError):
        grading_service.create_assignment(
            db_session, ctx_for(other_teacher),
            AssignmentCreate(
                classroom_id=course["classroom_id"], category_id=category.id, title="x", max_points=10,
            ),
        )


def test_devoir_categorie_d_une_autre_classe(db_session, course):
    tenant = db_session.get(Tenant, course["tenant_id"])
    teacher = db_session.get(User, course["teacher"].user_id)
    other = make_classroom(db_session, tenant, teacher, name="3B")
    foreign_category = grading_service.create_category(
        db_session, course["teacher"], GradeCategoryCreate(classroom_id=other.id, name="Devoirs", weight=50),
    )
    with pytest.raises(NotFoundError):
        add_assignment(db_session, course, foreign_category, "DM")

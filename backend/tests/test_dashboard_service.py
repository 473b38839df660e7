"""
Tests des indicateurs du tableau de bord.
"""

from datetime import date, timedelta

import pytest

from factories import ctx_for, enroll, link, make_classroom, make_student, make_tenant, make_user
from schoolconnect.schemas.attendance import AttendanceCreate
from schoolconnect.schemas.form_request import FormRequestCreate
from schoolconnect.schemas.messaging import ConversationCreate, MessageCreate
from schoolconnect.services import attendance_service, dashboard_service, form_service, messaging_service


@pytest.fixture
def school(db_session):
    tenant = make_tenant(db_session)
    teacher = make_user(db_session, tenant, role="teacher")
    parent = make_user(db_session, tenant, role="parent")
    classroom = make_classroom(db_session, tenant, teacher)
    students = [make_student(db_session, tenant, number=f"A00{i}") for i in range(3)]
    for student in students[:2]:
        enroll(db_session, classroom, student)
    link(db_session, parent, students[0])
    return {
        "admin": ctx_for(make_user(db_session, tenant, role="admin")),
        "teacher": ctx_for(teacher),
        "parent": ctx_for(parent),
        "students": [s.id for s in students],
        "classroom_id": classroom.id,
    }


def mark(db, school, student_id, status, day=None):
    attendance_service.create_attendance(db, school["teacher"], AttendanceCreate(
        student_id=student_id, classroom_id=school["classroom_id"], date=day or date.today(), status=status,
    ))


def test_tableau_de_bord_vide(db_session):
    admin = ctx_for(make_user(db_session, make_tenant(db_session), role="admin"))

    stats = dashboard_service.get_stats(db_session, admin)

    assert stats.model_dump() == {
        "total_students": 0, "present_today": 0, "pending_forms": 0, "unread_messages": 0,
    }


def test_total_eleves_selon_le_role(db_session, school):
    assert dashboard_service.get_stats(db_session, school["admin"]).total_students == 3
    assert dashboard_service.get_stats(db_session, school["teacher"]).total_students == 2
    assert dashboard_service.get_stats(db_session, school["parent"]).total_students == 1


def test_presents_aujourd_hui(db_session, school):
    first, second, _ = school["students"]
    mark(db_session, school, first, "present")
    mark(db_session, school, second, "late")
    mark(db_session, school, first, "present", day=date.today() - timedelta(days=1))

    assert dashboard_service.get_stats(db_session, school["admin"]).present_today == 2


def test_absents_non_comptes(db_session, school):
    mark(db_session, school, school["students"][0], "absent")
    assert dashboard_service.get_stats(db_session, school["admin"]).present_today == 0


def test_demandes_et_messages(db_session, school):
    form_service.create_form(db_session, school["parent"], FormRequestCreate(
        student_id=school["students"][0], form_type="sick_leave", title="Grippe", reason="Fièvre",
    ))
    conversation = messaging_service.create_conversation(
        db_session, school["parent"],
        ConversationCreate(title="Question", participant_ids=[school["teacher"].user_id]),
    )
    messaging_service.send_message(db_session, school["parent"], conversation.id, MessageCreate(content="Bonjour"))

    teacher_stats = dashboard_service.get_stats(db_session, school["teacher"])
    parent_stats = dashboard_service.get_stats(db_session, school["parent"])

    assert teacher_stats.pending_forms == 1
    assert teacher_stats.unread_messages == 1
    assert parent_stats.pending_forms == 1
    assert parent_stats.unread_messages == 0

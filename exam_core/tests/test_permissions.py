from datetime import timedelta
from types import SimpleNamespace

from django.test import SimpleTestCase
from django.utils import timezone

from exam_core.utils.permissions import Action, Identity, authorize

NOW = timezone.now()

STUDENT = Identity(id=1, role="Student")
TEACHER = Identity(id=2, role="Teacher")
OTHER_TEACHER = Identity(id=3, role="Teacher")
ADMIN = Identity(id=4, role="Admin")


def exam(**overrides):
    data = dict(
        is_active=True,
        start_time=NOW - timedelta(hours=1),
        end_time=NOW + timedelta(hours=1),
        allowed_roles=["Student"],
        max_attempts=1,
        created_by_id=TEACHER.id,
    )
    data.update(overrides)
    obj = SimpleNamespace(**data)
    obj.has_started = lambda now=None: (now or timezone.now()) >= obj.start_time
    return obj


def future_exam(**overrides):
    return exam(start_time=NOW + timedelta(hours=1), end_time=NOW + timedelta(hours=3), **overrides)


class StudentExamAccessTests(SimpleTestCase):

    def test_denied_before_start(self):
        decision = authorize(STUDENT, Action.TAKE_EXAM, future_exam(), now=NOW)
        self.assertFalse(decision)
        self.assertEqual(decision.code, "EXAM_TIME_RESTRICTED")
        self.assertIn("start_time", decision.context)

    def test_denied_after_end(self):
        ended = exam(start_time=NOW - timedelta(hours=3), end_time=NOW - timedelta(seconds=1))
        decision = authorize(STUDENT, Action.TAKE_EXAM, ended, now=NOW)
        self.assertEqual(decision.code, "EXAM_TIME_RESTRICTED")

    def test_allowed_inside_window_including_bounds(self):
        self.assertTrue(authorize(STUDENT, Action.TAKE_EXAM, exam(), now=NOW))
        self.assertTrue(authorize(STUDENT, Action.TAKE_EXAM, exam(start_time=NOW), now=NOW))
        self.assertTrue(authorize(STUDENT, Action.VIEW_EXAM, exam(end_time=NOW), now=NOW))

    def test_inactive_exam(self):
        decision = authorize(STUDENT, Action.VIEW_EXAM, exam(is_active=False), now=NOW)
        self.assertEqual(decision.code, "EXAM_INACTIVE")

    def test_students_not_in_allowed_roles(self):
        decision = authorize(STUDENT, Action.TAKE_EXAM, exam(allowed_roles=["Teacher"]), now=NOW)
        self.assertEqual(decision.code, "STUDENT_NOT_ALLOWED")

    def test_max_attempts(self):
        decision = authorize(STUDENT, Action.TAKE_EXAM, exam(max_attempts=2), now=NOW, attempts=2)
        self.assertEqual(decision.code, "MAX_ATTEMPTS_REACHED")
        self.assertEqual(decision.context["max_attempts"], 2)
        self.assertTrue(authorize(STUDENT, Action.TAKE_EXAM, exam(max_attempts=2), now=NOW, attempts=1))

    def test_only_students_take_exams(self):
        for identity in (TEACHER, ADMIN):
            decision = authorize(identity, Action.TAKE_EXAM, exam(), now=NOW)
            self.assertEqual(decision.code, "INSUFFICIENT_PERMISSIONS")
            self.assertEqual(decision.context["required_roles"], ["Student"])


class ExamModificationTests(SimpleTestCase):

    def test_students_cannot_modify(self):
        decision = authorize(STUDENT, Action.MODIFY_EXAM, future_exam(), now=NOW)
        self.assertEqual(decision.code, "STUDENT_MODIFICATION_DENIED")

    def test_owner_may_modify_before_start(self):
        self.assertTrue(authorize(TEACHER, Action.MODIFY_EXAM, future_exam(), now=NOW))

    def test_other_teacher_is_not_owner(self):
        decision = authorize(OTHER_TEACHER, Action.MODIFY_EXAM, future_exam(), now=NOW)
        self.assertEqual(decision.code, "NOT_EXAM_OWNER")

    def test_nobody_modifies_after_start(self):
        started = exam(start_time=NOW)
        for identity in (TEACHER, ADMIN):
            decision = authorize(identity, Action.MODIFY_EXAM, started, now=NOW)
            self.assertFalse(decision)
            self.assertEqual(decision.code, "EXAM_ALREADY_STARTED")

    def test_admin_bypasses_ownership(self):
        self.assertTrue(authorize(ADMIN, Action.MODIFY_EXAM, future_exam(created_by_id=99), now=NOW))
        self.assertTrue(authorize(ADMIN, Action.VIEW_EXAM_RESULTS, exam(created_by_id=99), now=NOW))

    def test_create_exam_roles(self):
        self.assertTrue(authorize(TEACHER, Action.CREATE_EXAM))
        self.assertTrue(authorize(ADMIN, Action.CREATE_EXAM))
        self.assertEqual(authorize(STUDENT, Action.CREATE_EXAM).code, "INSUFFICIENT_PERMISSIONS")


class ResourceAccessTests(SimpleTestCase):

    def test_question_ownership(self):
        question = SimpleNamespace(created_by_id=TEACHER.id)
        self.assertTrue(authorize(TEACHER, Action.MODIFY_QUESTION, question))
        self.assertEqual(
            authorize(OTHER_TEACHER, Action.MODIFY_QUESTION, question).code, "NOT_RESOURCE_OWNER"
        )
        self.assertTrue(authorize(ADMIN, Action.MODIFY_QUESTION, question))

    def test_orphaned_question_belongs_to_nobody(self):
        question = SimpleNamespace(created_by_id=None)
        self.assertFalse(authorize(TEACHER, Action.MODIFY_QUESTION, question))

    def test_result_visibility(self):
        result = SimpleNamespace(student_id=STUDENT.id, exam=exam())

        self.assertTrue(authorize(STUDENT, Action.VIEW_RESULT, result))
        self.assertTrue(authorize(TEACHER, Action.VIEW_RESULT, result))
        self.assertTrue(authorize(ADMIN, Action.VIEW_RESULT, result))

        other_student = Identity(id=50, role="Student")
        self.assertEqual(authorize(other_student, Action.VIEW_RESULT, result).code, "NOT_RESULT_OWNER")
        self.assertEqual(authorize(OTHER_TEACHER, Action.VIEW_RESULT, result).code, "NOT_EXAM_OWNER")

    def test_user_management_is_admin_only(self):
        self.assertTrue(authorize(ADMIN, Action.MANAGE_USERS))
        for identity in (STUDENT, TEACHER):
            decision = authorize(identity, Action.MANAGE_USERS)
            self.assertEqual(decision.code, "INSUFFICIENT_PERMISSIONS")
            self.assertEqual(decision.context["user_role"], identity.role)

    def test_unknown_role_is_denied(self):
        decision = authorize(Identity(id=9, role="Guest"), Action.VIEW_EXAM, exam())
        self.assertEqual(decision.code, "INSUFFICIENT_PERMISSIONS")

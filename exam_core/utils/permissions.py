"""
Authorization gate.

``authorize`` is a pure decision function over (identity, action, resource).
The rules for each role live in one policy class per role; the policy is
picked once from the identity's role instead of comparing role strings in
every view.
"""
from dataclasses import dataclass, field
from enum import Enum
import logging

from django.utils import timezone
from rest_framework import permissions

from ..exceptions import AccessDenied
from ..models import Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    VIEW_EXAM = "view_exam"
    TAKE_EXAM = "take_exam"
    CREATE_EXAM = "create_exam"
    MODIFY_EXAM = "modify_exam"
    LIST_OWN_EXAMS = "list_own_exams"
    VIEW_EXAM_QUESTIONS = "view_exam_questions"
    VIEW_EXAM_RESULTS = "view_exam_results"
    CREATE_QUESTION = "create_question"
    MODIFY_QUESTION = "modify_question"
    VIEW_QUESTION_ANSWERS = "view_question_answers"
    VIEW_RESULT = "view_result"
    MANAGE_USERS = "manage_users"
    LIST_STUDENTS = "list_students"


REQUIRED_ROLES = {
    Action.VIEW_EXAM: [Role.STUDENT, Role.TEACHER, Role.ADMIN],
    Action.TAKE_EXAM: [Role.STUDENT],
    Action.CREATE_EXAM: [Role.TEACHER, Role.ADMIN],
    Action.MODIFY_EXAM: [Role.TEACHER, Role.ADMIN],
    Action.LIST_OWN_EXAMS: [Role.TEACHER, Role.ADMIN],
    Action.VIEW_EXAM_QUESTIONS: [Role.TEACHER, Role.ADMIN],
    Action.VIEW_EXAM_RESULTS: [Role.TEACHER, Role.ADMIN],
    Action.CREATE_QUESTION: [Role.TEACHER, Role.ADMIN],
    Action.MODIFY_QUESTION: [Role.TEACHER, Role.ADMIN],
    Action.VIEW_QUESTION_ANSWERS: [Role.TEACHER, Role.ADMIN],
    Action.VIEW_RESULT: [Role.STUDENT, Role.TEACHER, Role.ADMIN],
    Action.MANAGE_USERS: [Role.ADMIN],
    Action.LIST_STUDENTS: [Role.TEACHER, Role.ADMIN],
}



@dataclass(frozen=True)
class Identity:
    id: int
    role: str
    email: str = ""

    @classmethod
    def from_account(cls, account):
        return cls(id=account.pk, role=account.role, email=account.email)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    code: str = ""
    message: str = ""
    context: dict = field(default_factory=dict)

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True)


def deny(code, message, **context):
    return Decision(False, code, message, context)




class RolePolicy:
    """Default policy: every action is refused. Subclasses opt in per action."""
    role = None

    def authorize(self, identity, action, resource=None, now=None, attempts=0):
        check = getattr(self, f"can_{Action(action).value}", None)
        if check is None:
            return self.insufficient(action)
        return check(identity, resource, now=now or timezone.now(), attempts=attempts)

    def insufficient(self, action):
        action = Action(action)
        return deny(
            "INSUFFICIENT_PERMISSIONS",
            "Access denied. Insufficient permissions.",
            required_roles=[str(r) for r in REQUIRED_ROLES[action]],
            user_role=self.role,
        )

    # shared rules

    @staticmethod
    def not_started(exam, now):
        if exam.has_started(now):
            return deny(
                "EXAM_ALREADY_STARTED",
                "Cannot modify exam that has already started.",
                start_time=exam.start_time,
            )
        return ALLOW

    @staticmethod
    def owns(identity, resource):
        return resource.created_by_id is not None and resource.created_by_id == identity.id

    def can_view_result(self, identity, result, **kwargs):
        return ALLOW



class StudentPolicy(RolePolicy):
    role = Role.STUDENT

    def exam_access(self, identity, exam, now, attempts):
        if not exam.is_active:
            return deny("EXAM_INACTIVE", "This exam is not currently active.")

        if now < exam.start_time or now > exam.end_time:
            return deny(
                "EXAM_TIME_RESTRICTED",
                "Exam is not available at this time.",
                start_time=exam.start_time,
                end_time=exam.end_time,
            )

        if Role.STUDENT not in (exam.allowed_roles or []):
            return deny("STUDENT_NOT_ALLOWED", "Students are not allowed to take this exam.")

        if attempts >= exam.max_attempts:
            return deny(
                "MAX_ATTEMPTS_REACHED",
                "Maximum attempts reached for this exam.",
                max_attempts=exam.max_attempts,
                attempts=attempts,
            )
        return ALLOW

    def can_view_exam(self, identity, exam, now, attempts):
        return self.exam_access(identity, exam, now, attempts)

    def can_take_exam(self, identity, exam, now, attempts):
        return self.exam_access(identity, exam, now, attempts)

    def can_modify_exam(self, identity, exam, **kwargs):
        return deny("STUDENT_MODIFICATION_DENIED", "Access denied. Students cannot modify exams.")

    def can_view_result(self, identity, result, **kwargs):
        if result.student_id != identity.id:
            return deny("NOT_RESULT_OWNER", "Access denied. You can only view your own results.")
        return ALLOW



class TeacherPolicy(RolePolicy):
    role = Role.TEACHER

    def can_view_exam(self, identity, exam, **kwargs):
        return ALLOW

    def can_create_exam(self, identity, resource, **kwargs):
        return ALLOW

    def can_list_own_exams(self, identity, resource, **kwargs):
        return ALLOW

    def exam_owner(self, identity, exam):
        if not self.owns(identity, exam):
            return deny("NOT_EXAM_OWNER", "Access denied. You can only manage your own exams.")
        return ALLOW

    def can_modify_exam(self, identity, exam, now, **kwargs):
        return self.exam_owner(identity, exam) and self.not_started(exam, now)

    def can_view_exam_questions(self, identity, exam, **kwargs):
        return self.exam_owner(identity, exam)

    def can_view_exam_results(self, identity, exam, **kwargs):
        return self.exam_owner(identity, exam)

    def can_create_question(self, identity, resource, **kwargs):
        return ALLOW

    def can_modify_question(self, identity, question, **kwargs):
        if not self.owns(identity, question):
            return deny("NOT_RESOURCE_OWNER", "Access denied. You can only modify your own resources.")
        return ALLOW

    def can_view_question_answers(self, identity, question, **kwargs):
        return ALLOW

    def can_view_result(self, identity, result, **kwargs):
        return self.exam_owner(identity, result.exam)

    def can_list_students(self, identity, resource, **kwargs):
        return ALLOW



class AdminPolicy(RolePolicy):
    """Admins bypass ownership. The start-time rule still applies to them."""
    role = Role.ADMIN

    def authorize(self, identity, action, resource=None, now=None, attempts=0):
        action = Action(action)
        if action == Action.TAKE_EXAM:
            return self.insufficient(action)
        if action == Action.MODIFY_EXAM:
            return self.not_started(resource, now or timezone.now())
        return ALLOW



POLICIES = {
    Role.STUDENT.value: StudentPolicy(),
    Role.TEACHER.value: TeacherPolicy(),
    Role.ADMIN.value: AdminPolicy(),
}


def authorize(identity, action, resource=None, *, now=None, attempts=0):
    """
    Decide whether ``identity`` may perform ``action`` on ``resource``.

    ``attempts`` is the number of earlier attempts the identity has on the
    exam and only matters for exam access. Returns a Decision; never raises
    for a denial.
    """
    policy = POLICIES.get(str(identity.role))
    if policy is None:
        return deny("INSUFFICIENT_PERMISSIONS", "Access denied. Unknown role.", user_role=identity.role)
    return policy.authorize(identity, action, resource, now=now, attempts=attempts)




class GateMixin:
    """View helper raising the gate's denial as an API error."""

    def identity(self):
        return Identity.from_account(self.request.user)

    def enforce(self, action, resource=None, **kwargs):
        decision = authorize(self.identity(), action, resource, **kwargs)
        if not decision:
            logger.info(
                "Denied %s on %s for account %s: %s",
                Action(action).value, type(resource).__name__, self.request.user.pk, decision.code,
            )
            raise AccessDenied.from_decision(decision)
        return decision



class GatePermission(permissions.BasePermission):
    """
    Evaluates resource-less actions declared on the view as
    ``gate_actions = {"create": Action.CREATE_EXAM, ...}``.
    Object level rules are enforced inside the view through GateMixin.
    """

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        action = getattr(view, "gate_actions", {}).get(getattr(view, "action", None))
        if action is None:
            return True
        decision = authorize(Identity.from_account(request.user), action)
        if not decision:
            raise AccessDenied.from_decision(decision)
        return True

import logging
from urllib.parse import urlencode

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.generics import GenericAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from rest_framework import serializers as drf_serializers
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Max, Q
from django.http import HttpResponse, HttpResponseRedirect
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.html import escape
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .exceptions import (
    AccountDeactivated,
    InvalidCredentials,
    PlatformError,
    ResourceNotFound,
)
from .models import EmailVerification, Exam, ExamQuestion, ExamResult, Question, Role
from .serializers import (
    AccountSerializer,
    AccountStatusSerializer,
    BulkQuestionSerializer,
    ExamDetailSerializer,
    ExamSerializer,
    GoogleCodeSerializer,
    LoginResponseSerializer,
    LoginSerializer,
    LogoutSerializer,
    ProfileUpdateSerializer,
    QuestionCheckResponseSerializer,
    QuestionCheckSerializer,
    QuestionIdsSerializer,
    QuestionSerializer,
    RefreshSerializer,
    RegisterSerializer,
    ReorderSerializer,
    ResultFilterSerializer,
    ResultSerializer,
    ResultSummarySerializer,
    RoleChangeSerializer,
    SubmissionSerializer,
)
from .services import (
    count_attempts,
    exam_statistics,
    open_attempt,
    start_attempt,
    submit_attempt,
)
from .services.guard import guard
from .services.oauth import GoogleOAuthClient, link_google_account
from .tokens import tokens
from .utils.helper import question_report
from .utils.permissions import Action, GateMixin, GatePermission, authorize


User = get_user_model()
logger = logging.getLogger(__name__)


def token_lifetime_seconds():
    return int(settings.SESSION_TOKEN_LIFETIME.total_seconds())


def session_payload(user, message):
    access, refresh = tokens.issue_pair(user)
    return {
        "message": message,
        "token": access,
        "refresh_token": refresh,
        "expires_in": token_lifetime_seconds(),
        "user": AccountSerializer(user).data,
    }




############################### AUTH VIEWS #######################################

class RegisterAPIView(GenericAPIView):
    """
    User registration API view.

    Creates a Student or Teacher account and signs it in straight away.
    """
    serializer_class = RegisterSerializer
    authentication_classes = []
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth_register"

    @extend_schema(request=RegisterSerializer, responses={201: LoginResponseSerializer})
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = serializer.save()
        user = result["user"]

        verification_link = (
            f"{request.scheme}://{request.get_host()}"
            f"/api/auth/verify-email/?token={result['verification_token']}"
        )
        logger.info("Registered account %s as %s", user.pk, user.role)

        data = session_payload(user, "User registered successfully")
        # In production the verification link is sent by email.
        data["verification_link"] = verification_link
        return Response(data, status=status.HTTP_201_CREATED)




class LoginAPIView(GenericAPIView):
    """
    Login API view.

    Login using email and password. Five wrong passwords in a row lock the
    account for two hours.
    """
    serializer_class = LoginSerializer
    authentication_classes = []
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth_login"

    @extend_schema(
        request=LoginSerializer,
        responses={
            200: LoginResponseSerializer,
            400: {"description": "Invalid email or password"},
            403: {"description": "Account deactivated"},
            423: {"description": "Account locked"},
        },
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data["email"].strip().lower()
        password = serializer.validated_data["password"]

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            raise InvalidCredentials()

        guard.ensure_unlocked(user)

        if not user.is_active:
            raise AccountDeactivated()

        if not user.check_password(password):
            guard.record_failure(user)
            logger.info("Failed login for account %s (%s in a row)", user.pk, user.failed_login_attempts)
            raise InvalidCredentials()

        guard.record_success(user)
        return Response(session_payload(user, "Login successful"), status=status.HTTP_200_OK)




class VerifyTokenAPIView(APIView):
    """Return the account behind the bearer token."""
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: AccountSerializer})
    def get(self, request, *args, **kwargs):
        return Response({
            "message": "Token is valid",
            "user": AccountSerializer(request.user).data,
        })



class RefreshAPIView(GenericAPIView):
    """Exchange a refresh token for a new access token."""
    serializer_class = RefreshSerializer
    authentication_classes = []
    permission_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user, access = tokens.refresh(serializer.validated_data["refresh_token"])
        return Response({
            "message": "Token refreshed successfully",
            "token": access,
            "expires_in": token_lifetime_seconds(),
            "user": AccountSerializer(user).data,
        })



class LogoutAPIView(GenericAPIView):
    """Invalidate the current access token and, when given, the refresh token."""
    serializer_class = LogoutSerializer
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tokens.revoke(request.auth)
        refresh_token = serializer.validated_data.get("refresh_token")
        if refresh_token:
            tokens.revoke_raw(refresh_token)

        logger.info("Account %s logged out", request.user.pk)
        return Response({"message": "Logged out successfully"})




@extend_schema(exclude=True)
class VerifyEmailAPIView(APIView):
    """
    Email verification via link (GET).
    """
    authentication_classes = []
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth_verify"

    def get(self, request, *args, **kwargs):
        token = request.query_params.get("token")

        if not token:
            return self._render_html(
                title="Verification Failed",
                message="Verification token is missing.",
                success=False,
            )

        try:
            ev = EmailVerification.objects.select_related("account").get(token=token)
        except (EmailVerification.DoesNotExist, ValidationError):
            return self._render_html(
                title="Verification Failed",
                message="Invalid or already used verification token.",
                success=False,
            )

        if ev.is_expired():
            ev.delete()
            return self._render_html(
                title="Verification Failed",
                message="This verification link has expired.",
                success=False,
            )

        account = ev.account
        account.is_email_verified = True
        account.save(update_fields=["is_email_verified"])
        ev.delete()

        return self._render_html(
            title="Email Verified",
            message="Your email has been successfully verified.",
            success=True,
        )

    def _render_html(self, title: str, message: str, success: bool):
        color = "#16a34a" if success else "#dc2626"

        html = f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8" />
            <meta name="viewport" content="width=device-width, initial-scale=1.0" />
            <title>{escape(title)}</title>
            <style>
                body {{
                    font-family: system-ui, -apple-system, BlinkMacSystemFont, sans-serif;
                    background-color: #f9fafb;
                    display: flex;
                    align-items: center;
                    justify-content: center;
                    height: 100vh;
                }}
                .card {{
                    background: #ffffff;
                    padding: 2rem 2.5rem;
                    border-radius: 10px;
                    box-shadow: 0 10px 25px rgba(0,0,0,0.08);
                    max-width: 420px;
                    text-align: center;
                }}
                h1 {{ color: {color}; margin-bottom: 0.75rem; }}
                p {{ color: #374151; font-size: 1rem; line-height: 1.5; }}
            </style>
        </head>
        <body>
            <div class="card">
                <h1>{escape(title)}</h1>
                <p>{escape(message)}</p>
            </div>
        </body>
        </html>
        """

        return HttpResponse(html, content_type="text/html")




class GoogleAuthAPIView(GenericAPIView):
    """
    Google sign-in.

    GET returns the consent screen URL. POST exchanges the authorization code
    for the user's Google profile and signs the matching local account in.
    Password lockout does not apply to this path.
    """
    serializer_class = GoogleCodeSerializer
    authentication_classes = []
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth_login"

    def get(self, request, *args, **kwargs):
        return Response({"auth_url": GoogleOAuthClient().authorization_url()})

    @extend_schema(request=GoogleCodeSerializer, responses={200: LoginResponseSerializer})
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        info = GoogleOAuthClient().authenticate(serializer.validated_data["code"])
        user, created = link_google_account(info)
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])

        data = session_payload(user, "Google authentication successful")
        data["is_new_user"] = created
        return Response(data, status=status.HTTP_200_OK)



@extend_schema(exclude=True)
class GoogleCallbackAPIView(APIView):
    """Redirect target registered with Google; hands the session to the frontend."""
    authentication_classes = []
    permission_classes = []

    def get(self, request, *args, **kwargs):
        if request.query_params.get("error"):
            return self._redirect("/login", error="oauth_cancelled")

        try:
            info = GoogleOAuthClient().authenticate(request.query_params.get("code"))
            user, _ = link_google_account(info)
        except PlatformError as exc:
            logger.warning("Google callback failed: %s", exc.code)
            return self._redirect("/login", error=exc.code.lower())

        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])
        access, refresh = tokens.issue_pair(user)
        return self._redirect("/auth/success", token=access, refresh_token=refresh)

    @staticmethod
    def _redirect(path, **params):
        return HttpResponseRedirect(f"{settings.FRONTEND_URL.rstrip('/')}{path}?{urlencode(params)}")








############################### EXAM VIEWS #######################################


class ExamViewSet(GateMixin, viewsets.ModelViewSet):
    """
    Exams. \n
    Students list and open exams that are running now and may start or submit
    an attempt. \n
    Teachers and Admins create exams and manage their questions until the
    exam starts.
    """
    serializer_class = ExamSerializer
    permission_classes = [GatePermission]
    throttle_scope = None
    gate_actions = {
        "create": Action.CREATE_EXAM,
        "mine": Action.LIST_OWN_EXAMS,
    }

    def get_queryset(self):
        exams = Exam.objects.annotate(question_count=Count("question_links")).order_by("-created_at")
        if self.action in ("retrieve", "start", "submit") and self.is_student():
            # inactive exams are refused by the gate with EXAM_INACTIVE
            return exams
        return exams.filter(is_active=True)

    def get_serializer_class(self):
        if self.action == "submit":
            return SubmissionSerializer
        if self.action in ("add_questions", "remove_questions"):
            return QuestionIdsSerializer
        if self.action == "reorder_questions":
            return ReorderSerializer
        return self.serializer_class

    def is_student(self):
        return getattr(self.request.user, "role", None) == Role.STUDENT

    def attempts_before(self, exam):
        """Earlier attempts of the student; an attempt still open does not count."""
        current = open_attempt(exam, self.request.user)
        return count_attempts(exam, self.request.user, exclude=current)

    def detail_response(self, exam, **extra):
        exam = self.get_queryset().get(pk=exam.pk)
        data = ExamDetailSerializer(exam, context={"request": self.request}).data
        data.update(extra)
        return data


    def list(self, request, *args, **kwargs):
        """
        Students see active exams that are running now and open to Students.
        Teachers and Admins see every active exam.
        """
        exams = self.get_queryset()

        subject = request.query_params.get("subject")
        if subject:
            exams = exams.filter(subject=subject)

        if self.is_student():
            now = timezone.now()
            exams = [
                e for e in exams.filter(start_time__lte=now, end_time__gte=now)
                if Role.STUDENT in (e.allowed_roles or [])
            ]

        serializer = self.get_serializer(exams, many=True)
        return Response(serializer.data)


    def retrieve(self, request, *args, **kwargs):
        exam = self.get_object()

        if self.is_student():
            self.enforce(Action.VIEW_EXAM, exam, attempts=self.attempts_before(exam))
            return Response(ExamSerializer(exam).data)

        self.enforce(Action.VIEW_EXAM, exam)
        if authorize(self.identity(), Action.VIEW_EXAM_QUESTIONS, exam):
            return Response(ExamDetailSerializer(exam).data)
        return Response(ExamSerializer(exam).data)


    def perform_create(self, serializer):
        exam = serializer.save(created_by=self.request.user)
        logger.info("Account %s created exam %s", self.request.user.pk, exam.pk)


    def update(self, request, *args, **kwargs):
        self.enforce(Action.MODIFY_EXAM, self.get_object())
        return super().update(request, *args, **kwargs)


    def destroy(self, request, *args, **kwargs):
        """Soft delete: the exam is deactivated, its results stay."""
        exam = self.get_object()
        self.enforce(Action.MODIFY_EXAM, exam)
        exam.is_active = False
        exam.save(update_fields=["is_active", "updated_at"])
        logger.info("Account %s deleted exam %s", request.user.pk, exam.pk)
        return Response({"message": "Exam deleted successfully"}, status=status.HTTP_200_OK)


    @action(detail=False, methods=["get"])
    def mine(self, request):
        """Exams created by the caller, including deleted ones."""
        exams = (
            Exam.objects.filter(created_by=request.user)
            .annotate(question_count=Count("question_links"))
            .order_by("-created_at")
        )
        return Response(ExamSerializer(exams, many=True).data)


    # -----------------------------------
    # QUESTIONS OF AN EXAM
    # -----------------------------------
    @action(detail=True, methods=["get"])
    def questions(self, request, pk=None):
        """Ordered questions of the exam with their answers."""
        exam = self.get_object()
        self.enforce(Action.VIEW_EXAM_QUESTIONS, exam)
        return Response(QuestionSerializer(exam.ordered_questions(), many=True).data)


    @extend_schema(request=QuestionIdsSerializer)
    @action(detail=True, methods=["post"], url_path="add-questions")
    @transaction.atomic
    def add_questions(self, request, pk=None):
        """
        Append bank questions to the exam. \n
        Every question must exist and have the exam's subject; questions
        already on the exam are skipped.
        """
        exam = self.get_object()
        self.enforce(Action.MODIFY_EXAM, exam)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question_ids = list(dict.fromkeys(serializer.validated_data["question_ids"]))

        found = {q.pk: q for q in Question.objects.filter(pk__in=question_ids)}
        missing = [qid for qid in question_ids if qid not in found]
        if missing:
            raise ResourceNotFound(
                "One or more questions not found.", "QUESTIONS_NOT_FOUND", question_ids=missing
            )

        mismatched = [qid for qid in question_ids if found[qid].subject != exam.subject]
        if mismatched:
            raise PlatformError(
                "All questions must belong to the exam's subject.",
                "SUBJECT_MISMATCH",
                question_ids=mismatched,
                subject=exam.subject,
            )

        present = set(exam.question_links.values_list("question_id", flat=True))
        last = exam.question_links.aggregate(last=Max("position"))["last"]
        position = 0 if last is None else last + 1
        links = []
        for qid in question_ids:
            if qid in present:
                continue
            links.append(ExamQuestion(exam=exam, question_id=qid, position=position))
            position += 1
        ExamQuestion.objects.bulk_create(links)

        return Response(
            self.detail_response(exam, message="Questions added successfully", added=len(links)),
            status=status.HTTP_200_OK,
        )


    @extend_schema(request=QuestionIdsSerializer)
    @action(detail=True, methods=["post"], url_path="remove-questions")
    @transaction.atomic
    def remove_questions(self, request, pk=None):
        exam = self.get_object()
        self.enforce(Action.MODIFY_EXAM, exam)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        removed, _ = exam.question_links.filter(
            question_id__in=serializer.validated_data["question_ids"]
        ).delete()
        self._renumber(list(exam.question_links.order_by("position", "id")))

        return Response(self.detail_response(exam, message="Questions removed successfully", removed=removed))


    @extend_schema(request=ReorderSerializer)
    @action(detail=True, methods=["post"], url_path="reorder-questions")
    @transaction.atomic
    def reorder_questions(self, request, pk=None):
        """Move one question of the exam to ``new_index`` (0-based)."""
        exam = self.get_object()
        self.enforce(Action.MODIFY_EXAM, exam)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question_id = serializer.validated_data["question_id"]
        new_index = serializer.validated_data["new_index"]

        links = list(exam.question_links.order_by("position", "id"))
        index = next((i for i, link in enumerate(links) if link.question_id == question_id), None)
        if index is None:
            raise ResourceNotFound("Question is not part of this exam.", "QUESTION_NOT_IN_EXAM")
        if new_index >= len(links):
            raise drf_serializers.ValidationError(
                {"new_index": [f"Index must be between 0 and {len(links) - 1}."]}
            )

        links.insert(new_index, links.pop(index))
        self._renumber(links)

        return Response(self.detail_response(exam, message="Questions reordered successfully"))

    @staticmethod
    def _renumber(links):
        for position, link in enumerate(links):
            link.position = position
        ExamQuestion.objects.bulk_update(links, ["position"])


    # -----------------------------------
    # ATTEMPTS
    # -----------------------------------
    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        """
        Start (or resume) an attempt. \n
        Returns the questions without their answers.
        """
        exam = self.get_object()
        self.enforce(Action.TAKE_EXAM, exam, attempts=self.attempts_before(exam))

        result, created = start_attempt(exam, request.user)
        questions = QuestionSerializer(
            exam.ordered_questions(), many=True, context={"hide_answers": True}
        ).data

        return Response(
            {
                "message": "Exam started. Proceed to answer questions." if created else "Attempt resumed.",
                "result_id": result.pk,
                "attempt_number": result.attempt_number,
                "start_time": result.start_time,
                "duration": exam.duration,
                "total_questions": len(questions),
                "questions": questions,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


    @extend_schema(request=SubmissionSerializer, responses={201: ResultSerializer})
    @action(detail=True, methods=["post"], throttle_scope="exam_submit")
    def submit(self, request, pk=None):
        """
        Submit answers and receive the scored result. \n
        Example request data: \n
            { \n
            "answers": [ \n
                {"question_id": 1, "selected_answer": "4", "time_spent": 30}, \n
                ... \n
            ] }\n
        """
        exam = self.get_object()
        self.enforce(Action.TAKE_EXAM, exam, attempts=self.attempts_before(exam))

        serializer = self.get_serializer(data=request.data, context={"request": request, "exam": exam})
        serializer.is_valid(raise_exception=True)

        result = submit_attempt(
            exam,
            request.user,
            serializer.validated_data["answers"],
            started_at=serializer.validated_data.get("started_at"),
        )
        result = ExamResult.objects.prefetch_related("answers__question").get(pk=result.pk)

        return Response(
            {
                "message": "Exam submitted successfully",
                "result": ResultSerializer(result).data,
            },
            status=status.HTTP_201_CREATED,
        )


    @action(detail=True, methods=["get"])
    def results(self, request, pk=None):
        """All attempts on this exam."""
        exam = self.get_object()
        self.enforce(Action.VIEW_EXAM_RESULTS, exam)
        results = exam.results.select_related("student", "exam").order_by("-created_at")
        return Response(ResultSummarySerializer(results, many=True).data)


    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        exam = self.get_object()
        self.enforce(Action.VIEW_EXAM_RESULTS, exam)
        return Response(exam_statistics(exam))








############################### QUESTION BANK VIEWS #######################################


class QuestionViewSet(GateMixin, viewsets.ModelViewSet):
    """
    Question bank. \n
    Teachers and Admins create and edit questions; a Teacher only edits their
    own. Students can read questions but never see answers or explanations.
    """
    serializer_class = QuestionSerializer
    permission_classes = [GatePermission]
    gate_actions = {
        "create": Action.CREATE_QUESTION,
        "bulk": Action.CREATE_QUESTION,
        "validate_question": Action.CREATE_QUESTION,
    }

    def get_queryset(self):
        questions = Question.objects.filter(is_active=True).order_by("-created_at")
        params = self.request.query_params
        if params.get("subject"):
            questions = questions.filter(subject=params["subject"])
        if params.get("question_type"):
            questions = questions.filter(question_type=params["question_type"])
        if params.get("difficulty"):
            questions = questions.filter(difficulty=params["difficulty"])
        return questions

    def get_serializer_context(self):
        context = super().get_serializer_context()
        user = self.request.user
        if user and user.is_authenticated:
            context["hide_answers"] = not authorize(self.identity(), Action.VIEW_QUESTION_ANSWERS)
        return context

    def target_exam(self, exam_id, subjects):
        """The exam new questions get attached to; the caller must be allowed to modify it."""
        exam = get_object_or_404(Exam, pk=exam_id, is_active=True)
        self.enforce(Action.MODIFY_EXAM, exam)
        if any(s != exam.subject for s in subjects):
            raise PlatformError(
                "All questions must belong to the exam's subject.",
                "SUBJECT_MISMATCH",
                subject=exam.subject,
            )
        return exam

    @staticmethod
    def attach(exam, questions):
        last = exam.question_links.aggregate(last=Max("position"))["last"]
        start = 0 if last is None else last + 1
        ExamQuestion.objects.bulk_create([
            ExamQuestion(exam=exam, question=q, position=start + i)
            for i, q in enumerate(questions)
        ])


    @extend_schema(
        parameters=[OpenApiParameter("subject", str), OpenApiParameter("question_type", str)],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)


    @transaction.atomic
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        exam_id = serializer.validated_data.get("exam_id")
        exam = self.target_exam(exam_id, [serializer.validated_data["subject"]]) if exam_id else None

        question = serializer.save(created_by=request.user)
        if exam is not None:
            self.attach(exam, [question])

        return Response(
            {"message": "Question created successfully", "question": self.get_serializer(question).data},
            status=status.HTTP_201_CREATED,
        )


    def update(self, request, *args, **kwargs):
        question = self.get_object()
        self.enforce(Action.MODIFY_QUESTION, question)

        serializer = self.get_serializer(question, data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        serializer.save()

        return Response({"message": "Question updated successfully", "question": serializer.data})


    def destroy(self, request, *args, **kwargs):
        """Hard delete. The question leaves every exam it was on."""
        question = self.get_object()
        self.enforce(Action.MODIFY_QUESTION, question)
        question.delete()
        return Response({"message": "Question deleted successfully"}, status=status.HTTP_200_OK)


    @extend_schema(request=BulkQuestionSerializer)
    @action(detail=False, methods=["post"])
    @transaction.atomic
    def bulk(self, request):
        """
        Create up to 100 questions at once. \n
        Invalid items are reported by position and skipped; the valid ones are
        created. With ``exam_id`` the created questions are appended to that
        exam.
        """
        serializer = BulkQuestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = serializer.validated_data["questions"]

        valid, errors = [], []
        for i, item in enumerate(items, start=1):
            item = {k: v for k, v in item.items() if k != "exam_id"}
            question_serializer = QuestionSerializer(data=item)
            if question_serializer.is_valid():
                valid.append(question_serializer)
            else:
                errors.append({"index": i, "errors": question_serializer.errors})

        exam_id = serializer.validated_data.get("exam_id")
        exam = None
        if exam_id:
            exam = self.target_exam(exam_id, [s.validated_data["subject"] for s in valid])

        created = [s.save(created_by=request.user) for s in valid]
        if exam is not None:
            self.attach(exam, created)

        message = f"Successfully created {len(created)} questions"
        if errors:
            message += f" ({len(errors)} failed)"

        data = {
            "message": message,
            "questions": self.get_serializer(created, many=True).data,
        }
        if errors:
            data["errors"] = errors
        return Response(data, status=status.HTTP_201_CREATED)


    @extend_schema(request=QuestionCheckSerializer, responses={200: QuestionCheckResponseSerializer})
    @action(detail=False, methods=["post"], url_path="validate")
    def validate_question(self, request):
        """Check a question definition without saving it."""
        serializer = QuestionCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return Response(question_report(
            data.get("question_text"),
            data.get("question_type"),
            data.get("options"),
            data.get("correct_answer"),
            data.get("marks"),
        ))








############################### RESULT VIEWS #######################################


class ResultViewSet(GateMixin, viewsets.ReadOnlyModelViewSet):
    """
    Attempt results. \n
    Students see their own, Teachers see results of their exams, Admins see all.
    """
    permission_classes = [IsAuthenticated]

    def get_serializer_class(self):
        if self.action == "retrieve":
            return ResultSerializer
        return ResultSummarySerializer

    def get_queryset(self):
        results = ExamResult.objects.select_related("exam", "student").order_by("-created_at")
        if self.action == "retrieve":
            # visibility is decided by the gate on the object
            return results.prefetch_related("answers__question")

        user = self.request.user
        if user.role == Role.STUDENT:
            results = results.filter(student=user)
        elif user.role == Role.TEACHER:
            results = results.filter(exam__created_by=user)

        filters = ResultFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        exam_id = filters.validated_data.get("exam")
        if exam_id:
            results = results.filter(exam_id=exam_id)
        return results

    def retrieve(self, request, *args, **kwargs):
        result = self.get_object()
        self.enforce(Action.VIEW_RESULT, result)
        return Response(self.get_serializer(result).data)








############################### USER VIEWS #######################################


class AccountPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100


class UserViewSet(GateMixin, viewsets.GenericViewSet):
    """
    Accounts. \n
    Everyone manages their own profile through ``me``; Admins manage every
    account; Teachers can list students.
    """
    serializer_class = AccountSerializer
    permission_classes = [GatePermission]
    pagination_class = AccountPagination
    gate_actions = {
        "list": Action.MANAGE_USERS,
        "stats": Action.MANAGE_USERS,
        "set_role": Action.MANAGE_USERS,
        "set_status": Action.MANAGE_USERS,
        "destroy": Action.MANAGE_USERS,
        "students": Action.LIST_STUDENTS,
    }

    def get_queryset(self):
        return User.objects.all().order_by("-date_joined")

    def get_serializer_class(self):
        if self.action == "set_role":
            return RoleChangeSerializer
        if self.action == "set_status":
            return AccountStatusSerializer
        if self.action == "me" and self.request.method in ("PUT", "PATCH"):
            return ProfileUpdateSerializer
        return self.serializer_class

    def not_self(self, account, code, message):
        if account.pk == self.request.user.pk:
            raise PlatformError(message, code)


    @extend_schema(parameters=[
        OpenApiParameter("role", str),
        OpenApiParameter("search", str),
        OpenApiParameter("is_active", bool),
    ])
    def list(self, request):
        accounts = self.get_queryset()
        params = request.query_params
        if params.get("role"):
            accounts = accounts.filter(role=params["role"])
        if params.get("is_active") in ("true", "false"):
            accounts = accounts.filter(is_active=params["is_active"] == "true")
        if params.get("search"):
            term = params["search"]
            accounts = accounts.filter(Q(name__icontains=term) | Q(email__icontains=term))

        page = self.paginate_queryset(accounts)
        return self.get_paginated_response(AccountSerializer(page, many=True).data)


    @action(detail=False, methods=["get", "put", "patch"])
    def me(self, request):
        if request.method == "GET":
            return Response(AccountSerializer(request.user).data)

        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({"message": "Profile updated successfully", "user": AccountSerializer(user).data})


    @action(detail=False, methods=["get"])
    def stats(self, request):
        now = timezone.now()
        by_role = dict(
            User.objects.values_list("role").annotate(count=Count("id")).order_by()
        )
        return Response({
            "total": User.objects.count(),
            "active": User.objects.filter(is_active=True).count(),
            "inactive": User.objects.filter(is_active=False).count(),
            "locked": User.objects.filter(lock_until__gt=now).count(),
            "email_verified": User.objects.filter(is_email_verified=True).count(),
            "by_role": {role: by_role.get(role, 0) for role in Role.values},
        })


    @action(detail=False, methods=["get"])
    def students(self, request):
        accounts = self.get_queryset().filter(role=Role.STUDENT, is_active=True)
        page = self.paginate_queryset(accounts)
        return self.get_paginated_response(AccountSerializer(page, many=True).data)


    @extend_schema(request=RoleChangeSerializer, responses={200: AccountSerializer})
    @action(detail=True, methods=["patch", "put"], url_path="role")
    def set_role(self, request, pk=None):
        """Change an account's role. Tokens issued for the old role stop working."""
        account = self.get_object()
        self.not_self(account, "CANNOT_CHANGE_OWN_ROLE", "You cannot change your own role.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account.role = serializer.validated_data["role"]
        account.save(update_fields=["role"])
        logger.info("Account %s changed role of %s to %s", request.user.pk, account.pk, account.role)

        return Response({"message": "User role updated successfully", "user": AccountSerializer(account).data})


    @extend_schema(request=AccountStatusSerializer, responses={200: AccountSerializer})
    @action(detail=True, methods=["patch", "put"], url_path="status")
    def set_status(self, request, pk=None):
        """Activate or deactivate an account; toggles when ``is_active`` is omitted."""
        account = self.get_object()
        self.not_self(account, "CANNOT_DEACTIVATE_SELF", "You cannot change your own status.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account.is_active = serializer.validated_data.get("is_active", not account.is_active)
        account.save(update_fields=["is_active"])
        logger.info("Account %s set %s active=%s", request.user.pk, account.pk, account.is_active)

        state = "activated" if account.is_active else "deactivated"
        return Response({"message": f"User {state} successfully", "user": AccountSerializer(account).data})


    def destroy(self, request, *args, **kwargs):
        account = self.get_object()
        self.not_self(account, "CANNOT_DELETE_SELF", "You cannot delete your own account.")
        account.delete()
        logger.info("Account %s deleted account %s", request.user.pk, kwargs.get("pk"))
        return Response({"message": "User deleted successfully"}, status=status.HTTP_200_OK)

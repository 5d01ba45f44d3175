from rest_framework import serializers
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
import django.utils.timezone as timezone
from datetime import timedelta

from .exceptions import UserExists
from .models import (
    EmailVerification,
    Exam,
    ExamResult,
    Question,
    ResultAnswer,
    Role,
)
from .utils.helper import question_errors, split_name


User = get_user_model()

SELF_REGISTER_ROLES = [Role.STUDENT, Role.TEACHER]



########## ACCOUNTS ##########

class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "first_name",
            "last_name",
            "role",
            "avatar",
            "is_active",
            "is_email_verified",
            "last_login",
            "date_joined",
        ]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    confirm_password = serializers.CharField(write_only=True, required=False)
    role = serializers.ChoiceField(
        choices=SELF_REGISTER_ROLES,
        default=Role.STUDENT,
        error_messages={"invalid_choice": "Role must be Student or Teacher."},
    )

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise UserExists()
        return value

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate(self, attrs):
        name = (attrs.get("name") or "").strip()
        first_name = (attrs.get("first_name") or "").strip()
        last_name = (attrs.get("last_name") or "").strip()

        if name:
            if not first_name and not last_name:
                first_name, last_name = split_name(name)
        elif first_name and last_name:
            name = f"{first_name} {last_name}"
        else:
            raise serializers.ValidationError(
                {"name": "Provide either name or both first_name and last_name."}
            )

        confirm = attrs.pop("confirm_password", None)
        if confirm is not None and confirm != attrs["password"]:
            raise serializers.ValidationError({"confirm_password": "Passwords do not match."})

        attrs.update(name=name, first_name=first_name, last_name=last_name)
        return attrs

    def create(self, validated_data):
        """
        Create the account and a pending EmailVerification.
        The account can log in straight away; verifying the email only
        flips ``is_email_verified``.
        """
        user = User.objects.create_user(
            email=validated_data["email"],
            password=validated_data["password"],
            name=validated_data["name"],
            first_name=validated_data["first_name"],
            last_name=validated_data["last_name"],
            role=validated_data["role"],
        )
        expires_at = timezone.now() + timedelta(hours=settings.EMAIL_VERIFICATION_HOURS)
        ev = EmailVerification.objects.create(account=user, expires_at=expires_at)
        return {"user": user, "verification_token": str(ev.token)}



class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class LoginResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    token = serializers.CharField()
    refresh_token = serializers.CharField()
    expires_in = serializers.IntegerField()
    user = AccountSerializer()


class RefreshSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class LogoutSerializer(serializers.Serializer):
    refresh_token = serializers.CharField(required=False, allow_blank=True)


class GoogleCodeSerializer(serializers.Serializer):
    code = serializers.CharField()



class ProfileUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    email = serializers.EmailField(required=False)
    current_password = serializers.CharField(write_only=True, required=False, trim_whitespace=False)
    new_password = serializers.CharField(write_only=True, required=False, min_length=8)

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exclude(pk=self.instance.pk).exists():
            raise UserExists()
        return value

    def validate(self, attrs):
        new_password = attrs.get("new_password")
        if new_password:
            current = attrs.get("current_password")
            if not current or not self.instance.check_password(current):
                raise serializers.ValidationError(
                    {"current_password": "Current password is incorrect."}
                )
            validate_password(new_password, self.instance)
        return attrs

    def update(self, instance, validated_data):
        for field in ("name", "first_name", "last_name", "email"):
            if field in validated_data:
                setattr(instance, field, validated_data[field])
        if "email" in validated_data:
            instance.is_email_verified = False
        if validated_data.get("new_password"):
            instance.set_password(validated_data["new_password"])
        instance.save()
        return instance


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)


class AccountStatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField(required=False)




########## QUESTIONS ##########

class QuestionSerializer(serializers.ModelSerializer):
    """
    Question bank entry. With ``hide_answers`` in the context the correct
    answer and explanation are left out of the output.
    """
    options = serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False),
        required=False,
    )
    correct_answer = serializers.CharField(trim_whitespace=False)
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    exam_id = serializers.IntegerField(write_only=True, required=False)

    class Meta:
        model = Question
        fields = [
            "id",
            "question_text",
            "question_type",
            "options",
            "correct_answer",
            "marks",
            "explanation",
            "difficulty",
            "subject",
            "created_by",
            "is_active",
            "created_at",
            "updated_at",
            "exam_id",
        ]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]
        extra_kwargs = {"marks": {"min_value": 1}}

    def validate(self, attrs):
        instance = self.instance

        def current(field, default=None):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field, default) if instance else default

        errors, _ = question_errors(
            current("question_type", Question.Types.MCQ),
            current("options", []),
            current("correct_answer"),
            current("marks", 1),
        )
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def create(self, validated_data):
        validated_data.pop("exam_id", None)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data.pop("exam_id", None)
        return super().update(instance, validated_data)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get("hide_answers"):
            data.pop("correct_answer", None)
            data.pop("explanation", None)
        return data


class BulkQuestionSerializer(serializers.Serializer):
    questions = serializers.ListField(
        child=serializers.DictField(),
        min_length=1,
        max_length=100,
        error_messages={
            "min_length": "Questions array is required and must not be empty.",
            "max_length": "Cannot create more than 100 questions at once.",
        },
    )
    exam_id = serializers.IntegerField(required=False)


class QuestionCheckSerializer(serializers.Serializer):
    question_text = serializers.CharField(required=False, allow_blank=True)
    question_type = serializers.ChoiceField(choices=Question.Types.choices, default=Question.Types.MCQ)
    options = serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False),
        required=False,
    )
    correct_answer = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    marks = serializers.IntegerField(required=False, allow_null=True)


class QuestionCheckResponseSerializer(serializers.Serializer):
    is_valid = serializers.BooleanField()
    errors = serializers.ListField(child=serializers.CharField())
    warnings = serializers.ListField(child=serializers.CharField())




########## EXAMS ##########

class ExamSerializer(serializers.ModelSerializer):
    instructions = serializers.ListField(child=serializers.CharField(), required=False)
    allowed_roles = serializers.ListField(
        child=serializers.ChoiceField(choices=Role.choices), required=False
    )
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    question_count = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            "id",
            "title",
            "description",
            "subject",
            "instructions",
            "duration",
            "total_marks",
            "passing_marks",
            "start_time",
            "end_time",
            "max_attempts",
            "allowed_roles",
            "is_active",
            "question_count",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]
        extra_kwargs = {
            "duration": {"min_value": 1},
            "total_marks": {"min_value": 1},
            "max_attempts": {"min_value": 1},
        }

    def get_question_count(self, obj) -> int:
        annotated = getattr(obj, "question_count", None)
        if annotated is not None:
            return annotated
        return obj.question_links.count()

    def validate(self, attrs):
        instance = self.instance

        def current(field):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field, None) if instance else None

        errors = {}
        start_time, end_time = current("start_time"), current("end_time")
        if start_time and end_time and start_time >= end_time:
            errors["end_time"] = "End time must be after start time."

        total_marks, passing_marks = current("total_marks"), current("passing_marks")
        if total_marks is not None and passing_marks is not None and passing_marks > total_marks:
            errors["passing_marks"] = "Passing marks cannot exceed total marks."

        if errors:
            raise serializers.ValidationError(errors)

        if instance is None and not attrs.get("allowed_roles"):
            attrs["allowed_roles"] = [Role.STUDENT.value]
        return attrs


class ExamDetailSerializer(ExamSerializer):
    """Exam with its ordered questions; answers hidden when ``hide_answers`` is set."""
    questions = serializers.SerializerMethodField()

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ["questions"]

    def get_questions(self, obj) -> list:
        return QuestionSerializer(
            obj.ordered_questions(), many=True, context=self.context
        ).data


class QuestionIdsSerializer(serializers.Serializer):
    question_ids = serializers.ListField(child=serializers.IntegerField(), min_length=1)


class ReorderSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    new_index = serializers.IntegerField(min_value=0)




########## ATTEMPTS & RESULTS ##########

class AnswerSubmitSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    selected_answer = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )
    time_spent = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class SubmissionSerializer(serializers.Serializer):
    started_at = serializers.DateTimeField(required=False)
    answers = AnswerSubmitSerializer(many=True)

    def validate_answers(self, answers):
        question_ids = [a["question_id"] for a in answers]
        if len(question_ids) != len(set(question_ids)):
            raise serializers.ValidationError("Each question can be answered only once.")

        exam = self.context["exam"]
        valid = set(exam.question_links.values_list("question_id", flat=True))
        if not set(question_ids) <= valid:
            raise serializers.ValidationError("One or more questions invalid for this exam.")
        return answers


class ResultFilterSerializer(serializers.Serializer):
    exam = serializers.IntegerField(required=False, min_value=1)


class ResultAnswerSerializer(serializers.ModelSerializer):
    question_id = serializers.IntegerField(read_only=True, allow_null=True)
    question_text = serializers.CharField(source="question.question_text", read_only=True, default=None)
    correct_answer = serializers.CharField(source="question.correct_answer", read_only=True, default=None)

    class Meta:
        model = ResultAnswer
        fields = [
            "question_id",
            "question_text",
            "selected_answer",
            "correct_answer",
            "is_correct",
            "marks_obtained",
            "time_spent",
        ]


class ResultSerializer(serializers.ModelSerializer):
    exam_title = serializers.CharField(source="exam.title", read_only=True)
    student_name = serializers.CharField(source="student.name", read_only=True)
    student_email = serializers.CharField(source="student.email", read_only=True)
    answers = ResultAnswerSerializer(many=True, read_only=True)

    class Meta:
        model = ExamResult
        fields = [
            "id",
            "exam",
            "exam_title",
            "student",
            "student_name",
            "student_email",
            "attempt_number",
            "total_marks",
            "marks_obtained",
            "percentage",
            "is_passed",
            "start_time",
            "end_time",
            "duration",
            "status",
            "answers",
        ]
        read_only_fields = fields


class ResultSummarySerializer(ResultSerializer):
    class Meta(ResultSerializer.Meta):
        fields = [f for f in ResultSerializer.Meta.fields if f != "answers"]
        read_only_fields = fields

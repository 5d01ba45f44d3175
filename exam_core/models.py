from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.exceptions import ValidationError
from django.db import models
import uuid
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Role(models.TextChoices):
    STUDENT = "Student", "Student"
    TEACHER = "Teacher", "Teacher"
    ADMIN = "Admin", "Admin"



class AccountManager(BaseUserManager):
    use_in_migrations = True

    def normalize_email(self, email):
        return (email or "").strip().lower()

    def get_by_natural_key(self, email):
        return self.get(email__iexact=email)

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("An email address is required")
        account = self.model(email=self.normalize_email(email), **extra_fields)
        if password:
            account.set_password(password)
        else:
            account.set_unusable_password()
        account.save(using=self._db)
        return account

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", Role.ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_email_verified", True)
        return self.create_user(email, password, **extra_fields)



class Account(AbstractUser):
    """
    Platform account. Email is the login identifier and is stored lower-cased,
    so uniqueness holds regardless of the casing used at registration.
    """
    username = None
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.STUDENT, db_index=True)

    google_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    avatar = models.URLField(max_length=500, blank=True)

    is_email_verified = models.BooleanField(default=False)
    failed_login_attempts = models.PositiveIntegerField(default=0)
    lock_until = models.DateTimeField(null=True, blank=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = AccountManager()

    class Meta:
        ordering = ["-date_joined"]

    def save(self, *args, **kwargs):
        self.email = (self.email or "").strip().lower()
        if not self.name:
            self.name = " ".join(p for p in (self.first_name, self.last_name) if p)
        super().save(*args, **kwargs)

    def is_locked(self, now=None):
        now = now or timezone.now()
        return bool(self.lock_until and self.lock_until > now)

    def __str__(self):
        return f"{self.email} ({self.role})"



class EmailVerification(models.Model):
    account = models.ForeignKey(User, on_delete=models.CASCADE, related_name='email_verifications')
    token = models.UUIDField(default=uuid.uuid4, unique=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()

    def is_expired(self):
        return timezone.now() > self.expires_at

    def __str__(self):
        return f"EmailVerification(token={self.token}, account_id={self.account_id})"




class Question(models.Model):
    class Types(models.TextChoices):
        MCQ = "Multiple Choice", "Multiple Choice"
        TRUE_FALSE = "True/False", "True/False"
        SHORT = "Short Answer", "Short Answer"
        ESSAY = "Essay", "Essay"

    class Difficulty(models.TextChoices):
        EASY = "Easy", "Easy"
        MEDIUM = "Medium", "Medium"
        HARD = "Hard", "Hard"

    question_text = models.TextField()
    question_type = models.CharField(max_length=20, choices=Types.choices, default=Types.MCQ, db_index=True)
    options = models.JSONField(default=list, blank=True)
    correct_answer = models.TextField()
    marks = models.PositiveIntegerField(default=1)
    explanation = models.TextField(blank=True)
    difficulty = models.CharField(max_length=10, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    subject = models.CharField(max_length=255, db_index=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='questions')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=['subject', 'is_active'], name='exam_core_q_subject_active_idx'),
        ]

    def clean(self):
        from .utils.helper import question_errors
        errors, _ = question_errors(
            self.question_type, self.options, self.correct_answer, self.marks
        )
        if errors:
            raise ValidationError(errors)

    def __str__(self):
        return f"Q{self.pk} ({self.question_type})"




class Exam(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField()
    subject = models.CharField(max_length=255, db_index=True)
    instructions = models.JSONField(default=list, blank=True)
    duration = models.PositiveIntegerField(help_text="Exam duration in minutes")
    total_marks = models.PositiveIntegerField()
    passing_marks = models.PositiveIntegerField()
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    max_attempts = models.PositiveIntegerField(default=1)
    allowed_roles = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    questions = models.ManyToManyField(Question, through='ExamQuestion', related_name='exams', blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_exams')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=['is_active', 'start_time', 'end_time'], name='exam_core_exam_window_idx'),
        ]

    def clean(self):
        errors = {}
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            errors["end_time"] = "End time must be after start time"
        if self.passing_marks is not None and self.total_marks is not None:
            if self.passing_marks > self.total_marks:
                errors["passing_marks"] = "Passing marks cannot exceed total marks"
        if errors:
            raise ValidationError(errors)

    def has_started(self, now=None):
        return (now or timezone.now()) >= self.start_time

    def is_open(self, now=None):
        now = now or timezone.now()
        return self.start_time <= now <= self.end_time

    def ordered_questions(self):
        links = self.question_links.select_related("question").order_by("position", "id")
        return [link.question for link in links]

    def __str__(self):
        return f"{self.title}_subject_{self.subject}"



class ExamQuestion(models.Model):
    exam = models.ForeignKey(Exam, related_name='question_links', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, related_name='exam_links', on_delete=models.CASCADE)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["exam", "question"], name="unique_exam_question")
        ]

    def __str__(self):
        return f"Exam {self.exam_id} #{self.position}: Q{self.question_id}"




class ExamResult(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = "In Progress", "In Progress"
        COMPLETED = "Completed", "Completed"
        ABANDONED = "Abandoned", "Abandoned"

    student = models.ForeignKey(User, related_name='exam_results', on_delete=models.CASCADE)
    exam = models.ForeignKey(Exam, related_name='results', on_delete=models.CASCADE)
    attempt_number = models.PositiveIntegerField(default=1)
    total_marks = models.PositiveIntegerField()
    marks_obtained = models.PositiveIntegerField(default=0)
    percentage = models.FloatField(default=0)
    is_passed = models.BooleanField(default=False)
    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.FloatField(null=True, blank=True, help_text="Minutes between start and submission")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'exam', 'attempt_number'],
                name='unique_attempt_per_student_exam'
            )
        ]
        indexes = [
            models.Index(fields=['student', 'exam'], name='exam_core_result_student_idx'),
            models.Index(fields=['exam', 'status'], name='exam_core_result_status_idx'),
        ]

    def __str__(self):
        return f"Attempt {self.attempt_number} by {self.student_id} for exam {self.exam_id}"



class ResultAnswer(models.Model):
    result = models.ForeignKey(ExamResult, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, related_name='result_answers', null=True, on_delete=models.SET_NULL)
    position = models.PositiveIntegerField(default=0)
    selected_answer = models.TextField(blank=True, null=True)
    is_correct = models.BooleanField(default=False)
    marks_obtained = models.PositiveIntegerField(default=0)
    time_spent = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")

    class Meta:
        ordering = ["position"]

    def __str__(self):
        return f"Answer {self.pk} for result {self.result_id}"

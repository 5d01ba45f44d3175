import logging

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Max, Min, Q
from django.utils import timezone

from ..exceptions import Conflict
from .scorer import ExamKey, SubmittedAnswer, round2, score

logger = logging.getLogger(__name__)


def _results():
    from ..models import ExamResult
    return ExamResult


def open_attempt(exam, student):
    ExamResult = _results()
    return (
        ExamResult.objects
        .filter(exam=exam, student=student, status=ExamResult.Status.IN_PROGRESS)
        .order_by("-attempt_number")
        .first()
    )


def count_attempts(exam, student, exclude=None):
    """Number of attempts the student has on the exam, any status."""
    qs = _results().objects.filter(exam=exam, student=student)
    if exclude is not None:
        qs = qs.exclude(pk=exclude.pk)
    return qs.count()


def _next_attempt_number(exam, student):
    last = (
        _results().objects
        .filter(exam=exam, student=student)
        .aggregate(last=Max("attempt_number"))["last"]
    )
    return (last or 0) + 1


def _create_result(**fields):
    ExamResult = _results()
    try:
        with transaction.atomic():
            return ExamResult.objects.create(**fields)
    except IntegrityError:
        logger.warning(
            "Duplicate attempt %s for student %s on exam %s",
            fields.get("attempt_number"), fields["student"].pk, fields["exam"].pk,
        )
        raise Conflict(
            "This attempt has already been recorded.",
            "DUPLICATE_ATTEMPT",
        )


def start_attempt(exam, student, now=None):
    """
    Open an attempt for the student.

    Returns ``(result, created)``. An attempt that is already In Progress is
    returned as is; otherwise attempt ``n + 1`` is created. The caller is
    responsible for checking exam access first.
    """
    existing = open_attempt(exam, student)
    if existing is not None:
        return existing, False

    ExamResult = _results()
    result = _create_result(
        student=student,
        exam=exam,
        attempt_number=_next_attempt_number(exam, student),
        total_marks=exam.total_marks,
        start_time=now or timezone.now(),
        status=ExamResult.Status.IN_PROGRESS,
    )
    logger.info("Student %s started attempt %s on exam %s", student.pk, result.attempt_number, exam.pk)
    return result, True


def _duration_minutes(start, end):
    return round2((end - start).total_seconds() / 60)


def _clamp_start(exam, started_at, now):
    """Client supplied start time, kept between the exam's start and ``now``."""
    if started_at is None:
        return now
    return min(max(started_at, exam.start_time), now)


def complete_attempt(result, scored, now=None):
    """
    Move an In Progress attempt to Completed with the scored outcome.

    The write only applies while the row is still In Progress, so a second
    final submit of the same attempt is refused.
    """
    ExamResult = _results()
    now = now or timezone.now()
    updated = ExamResult.objects.filter(
        pk=result.pk, status=ExamResult.Status.IN_PROGRESS
    ).update(
        total_marks=scored.total_marks,
        marks_obtained=scored.marks_obtained,
        percentage=scored.percentage,
        is_passed=scored.is_passed,
        end_time=now,
        duration=_duration_minutes(result.start_time, now),
        status=ExamResult.Status.COMPLETED,
    )
    if not updated:
        raise Conflict("This attempt has already been submitted.", "ATTEMPT_ALREADY_SUBMITTED")
    result.refresh_from_db()
    return result


def _store_answers(result, scored):
    from ..models import ResultAnswer
    ResultAnswer.objects.bulk_create([
        ResultAnswer(
            result=result,
            question_id=answer.question_id,
            position=index,
            selected_answer=answer.selected_answer,
            is_correct=answer.is_correct,
            marks_obtained=answer.marks_obtained,
            time_spent=answer.time_spent,
        )
        for index, answer in enumerate(scored.answers)
    ])


def submit_attempt(exam, student, answers, started_at=None, now=None):
    """
    Score a submission and persist it as a Completed attempt.

    ``answers`` is an iterable of dicts with ``question_id``,
    ``selected_answer`` and optionally ``time_spent``. The open attempt is
    completed when there is one; otherwise a Completed attempt is recorded
    directly.
    """
    ExamResult = _results()
    now = now or timezone.now()
    submitted = [
        SubmittedAnswer(
            question_id=a["question_id"],
            selected_answer=a.get("selected_answer"),
            time_spent=a.get("time_spent"),
        )
        for a in answers
    ]
    scored = score(ExamKey.from_exam(exam), submitted)

    with transaction.atomic():
        current = open_attempt(exam, student)
        if current is not None:
            result = complete_attempt(current, scored, now=now)
        else:
            start = _clamp_start(exam, started_at, now)
            result = _create_result(
                student=student,
                exam=exam,
                attempt_number=_next_attempt_number(exam, student),
                total_marks=scored.total_marks,
                marks_obtained=scored.marks_obtained,
                percentage=scored.percentage,
                is_passed=scored.is_passed,
                start_time=start,
                end_time=now,
                duration=_duration_minutes(start, now),
                status=ExamResult.Status.COMPLETED,
            )
        _store_answers(result, scored)

    logger.info(
        "Student %s submitted attempt %s on exam %s: %s/%s",
        student.pk, result.attempt_number, exam.pk, result.marks_obtained, result.total_marks,
    )
    return result


def exam_statistics(exam):
    ExamResult = _results()
    completed = ExamResult.objects.filter(exam=exam, status=ExamResult.Status.COMPLETED)
    stats = completed.aggregate(
        total=Count("id"),
        passed=Count("id", filter=Q(is_passed=True)),
        average=Avg("percentage"),
        highest=Max("percentage"),
        lowest=Min("percentage"),
    )
    total = stats["total"]
    return {
        "exam_id": exam.pk,
        "total_attempts": total,
        "passed": stats["passed"],
        "failed": total - stats["passed"],
        "pass_rate": round2(stats["passed"] / total * 100) if total else 0.0,
        "average_percentage": round2(stats["average"]) if total else 0.0,
        "highest_percentage": stats["highest"] if total else 0.0,
        "lowest_percentage": stats["lowest"] if total else 0.0,
    }

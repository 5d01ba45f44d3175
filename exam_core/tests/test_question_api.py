from django.urls import reverse
from rest_framework import status

from exam_core.models import ExamQuestion, Question, ResultAnswer, Role
from exam_core.services import submit_attempt

from .base import ApiTestCase, attach, make_account, make_exam, make_open_exam, make_question


def question_payload(**overrides):
    data = {
        "question_text": "Which number is prime?",
        "question_type": "Multiple Choice",
        "options": ["4", "6", "7"],
        "correct_answer": "7",
        "marks": 2,
        "explanation": "7 has no divisors other than 1 and itself.",
        "subject": "Mathematics",
    }
    data.update(overrides)
    return data


class QuestionCrudTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.teacher = make_account("teacher@example.com", role=Role.TEACHER)
        self.other_teacher = make_account("other@example.com", role=Role.TEACHER)
        self.admin = make_account("admin@example.com", role=Role.ADMIN)
        self.student = make_account("student@example.com")

    def test_teacher_creates_question(self):
        self.login_as(self.teacher)
        response = self.client.post(reverse("question-list"), question_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        question = response.json()["question"]
        self.assertEqual(question["correct_answer"], "7")
        self.assertEqual(question["created_by"], self.teacher.pk)
        self.assertEqual(question["difficulty"], "Medium")

    def test_student_cannot_create(self):
        self.login_as(self.student)
        response = self.client.post(reverse("question-list"), question_payload(), format="json")
        self.assertError(response, 403, "INSUFFICIENT_PERMISSIONS")

    def test_type_rules(self):
        self.login_as(self.teacher)
        invalid = [
            question_payload(correct_answer="9"),
            question_payload(options=["7"]),
            question_payload(question_type="True/False", options=[], correct_answer="Yes"),
            question_payload(question_type="Short Answer", options=[], correct_answer="   "),
        ]
        for payload in invalid:
            response = self.client.post(reverse("question-list"), payload, format="json")
            self.assertError(response, 400, "VALIDATION_ERROR")
        self.assertFalse(Question.objects.exists())

        response = self.client.post(reverse("question-list"), question_payload(
            question_type="True/False", options=[], correct_answer="True",
        ), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)

    def test_students_never_see_answers(self):
        make_question(self.teacher, explanation="Because.")

        self.login_as(self.student)
        listing = self.client.get(reverse("question-list")).json()
        self.assertEqual(len(listing), 1)
        self.assertNotIn("correct_answer", listing[0])
        self.assertNotIn("explanation", listing[0])

        self.login_as(self.other_teacher)
        listing = self.client.get(reverse("question-list")).json()
        self.assertEqual(listing[0]["correct_answer"], "4")

    def test_filters(self):
        make_question(self.teacher, subject="Physics")
        make_question(self.teacher, question_type=Question.Types.TRUE_FALSE, options=[], correct_answer="True")

        self.login_as(self.teacher)
        self.assertEqual(len(self.client.get(reverse("question-list"), {"subject": "Physics"}).json()), 1)
        self.assertEqual(
            len(self.client.get(reverse("question-list"), {"question_type": "True/False"}).json()), 1
        )

    def test_only_owner_or_admin_updates(self):
        question = make_question(self.teacher)
        url = reverse("question-detail", args=[question.pk])

        self.login_as(self.other_teacher)
        self.assertError(self.client.patch(url, {"marks": 3}, format="json"), 403, "NOT_RESOURCE_OWNER")

        self.login_as(self.admin)
        response = self.client.patch(url, {"marks": 3}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        question.refresh_from_db()
        self.assertEqual(question.marks, 3)

    def test_update_checks_stored_options(self):
        question = make_question(self.teacher)
        self.login_as(self.teacher)
        response = self.client.patch(
            reverse("question-detail", args=[question.pk]), {"correct_answer": "6"}, format="json"
        )
        self.assertError(response, 400, "VALIDATION_ERROR")

    def test_delete_detaches_question(self):
        question = make_question(self.teacher, marks=10)
        exam = make_open_exam(self.teacher)
        attach(exam, question)
        result = submit_attempt(exam, self.student, [{"question_id": question.pk, "selected_answer": "4"}])

        self.login_as(self.teacher)
        response = self.client.delete(reverse("question-detail", args=[question.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.assertFalse(Question.objects.filter(pk=question.pk).exists())
        self.assertFalse(ExamQuestion.objects.filter(exam=exam).exists())
        answer = ResultAnswer.objects.get(result=result)
        self.assertIsNone(answer.question_id)
        self.assertTrue(answer.is_correct)

    def test_create_attached_to_exam(self):
        exam = make_exam(self.teacher)
        self.login_as(self.teacher)

        response = self.client.post(reverse("question-list"), question_payload(exam_id=exam.pk), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(
            list(exam.question_links.values_list("question_id", flat=True)),
            [response.json()["question"]["id"]],
        )

        response = self.client.post(
            reverse("question-list"), question_payload(exam_id=exam.pk, subject="Physics"), format="json"
        )
        self.assertError(response, 400, "SUBJECT_MISMATCH")
        self.assertEqual(Question.objects.count(), 1)

    def test_create_for_someone_elses_exam(self):
        exam = make_exam(self.teacher)
        self.login_as(self.other_teacher)
        response = self.client.post(reverse("question-list"), question_payload(exam_id=exam.pk), format="json")
        self.assertError(response, 403, "NOT_EXAM_OWNER")
        self.assertFalse(Question.objects.exists())



class BulkQuestionTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.teacher = make_account("teacher@example.com", role=Role.TEACHER)
        self.login_as(self.teacher)

    def test_partial_success(self):
        response = self.client.post(reverse("question-bulk"), {"questions": [
            question_payload(),
            question_payload(correct_answer="1"),
            question_payload(question_type="Essay", options=[], correct_answer="Any reasoned answer"),
        ]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        data = response.json()
        self.assertEqual(len(data["questions"]), 2)
        self.assertEqual([e["index"] for e in data["errors"]], [2])
        self.assertIn("(1 failed)", data["message"])
        self.assertEqual(Question.objects.count(), 2)

    def test_limits(self):
        response = self.client.post(reverse("question-bulk"), {"questions": []}, format="json")
        self.assertError(response, 400, "VALIDATION_ERROR")

        response = self.client.post(
            reverse("question-bulk"), {"questions": [question_payload()] * 101}, format="json"
        )
        self.assertError(response, 400, "VALIDATION_ERROR")
        self.assertFalse(Question.objects.exists())

    def test_bulk_attaches_to_exam(self):
        exam = make_exam(self.teacher)
        response = self.client.post(reverse("question-bulk"), {
            "exam_id": exam.pk,
            "questions": [question_payload(), question_payload(question_text="Which number is even?",
                                                               correct_answer="4")],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(exam.question_links.count(), 2)
        self.assertEqual(sorted(exam.question_links.values_list("position", flat=True)), [0, 1])



class QuestionCheckTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.login_as(make_account("teacher@example.com", role=Role.TEACHER))

    def test_valid_question_with_short_text(self):
        response = self.client.post(reverse("question-validate-question"), {
            "question_text": "2 + 2?",
            "question_type": "Multiple Choice",
            "options": ["3", "4"],
            "correct_answer": "4",
            "marks": 1,
        }, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        data = response.json()
        self.assertTrue(data["is_valid"])
        self.assertEqual(data["errors"], [])
        self.assertIn("Question text seems too short", data["warnings"])

    def test_invalid_question_is_not_saved(self):
        response = self.client.post(reverse("question-validate-question"), {
            "question_type": "True/False",
            "correct_answer": "Maybe",
        }, format="json")

        data = response.json()
        self.assertFalse(data["is_valid"])
        self.assertIn("Question text is required", data["errors"])
        self.assertIn("Marks must be at least 1", data["errors"])
        self.assertFalse(Question.objects.exists())

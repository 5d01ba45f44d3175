from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from exam_core.exceptions import AccountLocked
from exam_core.services.guard import AccountGuard

from .base import make_account


class AccountGuardTests(TestCase):

    def setUp(self):
        self.guard = AccountGuard(threshold=5, lock_duration=timedelta(hours=2))
        self.account = make_account("dave@example.com")

    def test_fifth_failure_locks_for_two_hours(self):
        now = timezone.now()
        for _ in range(4):
            self.assertFalse(self.guard.record_failure(self.account, now=now))
        self.assertIsNone(self.account.lock_until)

        self.assertTrue(self.guard.record_failure(self.account, now=now))
        self.account.refresh_from_db()
        self.assertEqual(self.account.failed_login_attempts, 5)
        self.assertEqual(self.account.lock_until, now + timedelta(hours=2))
        self.assertTrue(self.account.is_locked(now))

    def test_failures_while_locked_do_not_count(self):
        now = timezone.now()
        for _ in range(5):
            self.guard.record_failure(self.account, now=now)

        self.assertFalse(self.guard.record_failure(self.account, now=now + timedelta(minutes=1)))
        self.account.refresh_from_db()
        self.assertEqual(self.account.failed_login_attempts, 5)
        self.assertEqual(self.account.lock_until, now + timedelta(hours=2))

    def test_ensure_unlocked_rejects_locked_account(self):
        lock_until = timezone.now() + timedelta(hours=1)
        self.account.lock_until = lock_until
        self.account.save()

        with self.assertRaises(AccountLocked) as ctx:
            self.guard.ensure_unlocked(self.account)
        self.assertEqual(ctx.exception.status_code, 423)
        self.assertEqual(ctx.exception.context["lock_until"], lock_until)

    def test_lapsed_lock_is_cleared_on_next_attempt(self):
        self.account.failed_login_attempts = 5
        self.account.lock_until = timezone.now() - timedelta(seconds=1)
        self.account.save()

        self.guard.ensure_unlocked(self.account)
        self.account.refresh_from_db()
        self.assertIsNone(self.account.lock_until)
        self.assertEqual(self.account.failed_login_attempts, 0)

    def test_success_resets_counter(self):
        for _ in range(3):
            self.guard.record_failure(self.account)

        self.guard.record_success(self.account)
        self.account.refresh_from_db()
        self.assertEqual(self.account.failed_login_attempts, 0)
        self.assertIsNone(self.account.lock_until)
        self.assertIsNotNone(self.account.last_login)

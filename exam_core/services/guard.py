import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import AccountLocked

logger = logging.getLogger(__name__)


class AccountGuard:
    """
    Failed-login bookkeeping per account.

    An account is Locked while ``lock_until`` lies in the future and Unlocked
    otherwise. Expired locks are cleared lazily on the next login attempt.
    """

    def __init__(self, threshold=None, lock_duration=None):
        self.threshold = threshold or getattr(settings, "ACCOUNT_LOCKOUT_THRESHOLD", 5)
        self.lock_duration = lock_duration or settings.ACCOUNT_LOCKOUT_DURATION

    def ensure_unlocked(self, account, now=None):
        now = now or timezone.now()
        if account.is_locked(now):
            raise AccountLocked(
                "Account is temporarily locked. Please try again later.",
                lock_until=account.lock_until,
            )
        if account.lock_until is not None:
            # lock has lapsed
            account.lock_until = None
            account.failed_login_attempts = 0
            account.save(update_fields=["lock_until", "failed_login_attempts"])

    @transaction.atomic
    def record_failure(self, account, now=None):
        """Count a wrong password. Returns True when this failure locked the account."""
        now = now or timezone.now()
        locked = type(account).objects.select_for_update().get(pk=account.pk)

        if locked.is_locked(now):
            return False

        locked.failed_login_attempts += 1
        just_locked = locked.failed_login_attempts >= self.threshold
        if just_locked:
            locked.lock_until = now + self.lock_duration
            logger.warning(
                "Account %s locked until %s after %s failed logins",
                locked.pk, locked.lock_until.isoformat(), locked.failed_login_attempts,
            )
        locked.save(update_fields=["failed_login_attempts", "lock_until"])

        account.failed_login_attempts = locked.failed_login_attempts
        account.lock_until = locked.lock_until
        return just_locked

    def record_success(self, account, now=None):
        account.failed_login_attempts = 0
        account.lock_until = None
        account.last_login = now or timezone.now()
        account.save(update_fields=["failed_login_attempts", "lock_until", "last_login"])


guard = AccountGuard()

import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from django.contrib.auth import get_user_model

from .exceptions import AccountDeactivated, AccountLocked, RoleChanged, UnknownAccount
from .tokens import tokens

logger = logging.getLogger(__name__)


class SessionTokenAuthentication(JWTAuthentication):
    """
    Bearer token authentication.

    Runs the token verifier, then checks the account behind the token is
    still present, active, unlocked and holds the role the token was
    issued for.
    """
    www_authenticate_realm = 'api'

    def authenticate(self, request):
        header = self.get_header(request)
        if header is None:
            return None

        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None

        if isinstance(raw_token, bytes):
            raw_token = raw_token.decode()

        token = tokens.verify(raw_token)
        return self.authenticate_credentials(token), token

    def authenticate_credentials(self, token):
        model = get_user_model()
        try:
            account = model.objects.get(pk=token.get('user_id'))
        except (model.DoesNotExist, ValueError, TypeError):
            raise UnknownAccount()

        if not account.is_active:
            raise AccountDeactivated()

        if account.is_locked():
            raise AccountLocked(lock_until=account.lock_until)

        if token.get('role') != account.role:
            logger.info("Rejected token for account %s: role changed", account.pk)
            raise RoleChanged()

        return account

"""
Session tokens.

Access and refresh tokens are signed JWTs carrying the account id, role and
email. Verification is stateless except for the logout blacklist, which lives
in a Django cache so that every process sharing the cache sees a revocation.
"""
import logging

import jwt

from django.contrib.auth import get_user_model
from django.core.cache import caches
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.state import token_backend
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken
from rest_framework_simplejwt.utils import aware_utcnow, datetime_from_epoch

from .exceptions import (
    AccountDeactivated,
    RefreshRejected,
    TokenBlacklisted,
    TokenExpired,
    TokenRejected,
)

logger = logging.getLogger(__name__)

Account = get_user_model()


class CacheTokenBlacklist:
    """Revoked token ids, each kept only until the token would expire anyway."""

    key_prefix = "token-blacklist"

    def __init__(self, cache=None):
        self._cache = cache

    @property
    def cache(self):
        # resolved lazily so test settings and cache.clear() apply
        return self._cache or caches["default"]

    def _key(self, jti):
        return f"{self.key_prefix}:{jti}"

    def add(self, jti, expires_at):
        ttl = int((expires_at - aware_utcnow()).total_seconds())
        if ttl <= 0:
            return
        self.cache.set(self._key(jti), True, timeout=ttl)

    def contains(self, jti):
        return bool(self.cache.get(self._key(jti)))



class TokenService:
    access_class = AccessToken
    refresh_class = RefreshToken

    def __init__(self, blacklist=None):
        self.blacklist = blacklist or CacheTokenBlacklist()

    @staticmethod
    def _add_claims(token, account):
        token["role"] = account.role
        token["email"] = account.email
        return token

    def issue(self, account):
        return str(self._add_claims(self.access_class.for_user(account), account))

    def issue_refresh(self, account):
        return str(self._add_claims(self.refresh_class.for_user(account), account))

    def issue_pair(self, account):
        return self.issue(account), self.issue_refresh(account)

    def _decode(self, raw, token_class):
        if not raw:
            raise TokenRejected()
        try:
            token = token_class(raw)
        except TokenError:
            if self._is_expired(raw):
                raise TokenExpired()
            raise TokenRejected()

        if self.blacklist.contains(token["jti"]):
            raise TokenBlacklisted()
        return token

    @staticmethod
    def _is_expired(raw):
        """True only for a correctly signed token whose ``exp`` has passed."""
        try:
            payload = jwt.decode(
                raw,
                token_backend.get_verifying_key(raw),
                algorithms=[token_backend.algorithm],
                audience=token_backend.audience,
                issuer=token_backend.issuer,
                options={"verify_exp": False},
            )
        except jwt.PyJWTError:
            return False
        exp = payload.get("exp")
        return exp is not None and datetime_from_epoch(exp) <= aware_utcnow()

    def verify(self, raw):
        """
        Validate an access token and return it.

        Raises TokenExpired, TokenRejected (INVALID_TOKEN) or TokenBlacklisted.
        """
        return self._decode(raw, self.access_class)

    def refresh(self, raw_refresh):
        """Exchange a refresh token for a new access token minted from the account's current state."""
        try:
            token = self._decode(raw_refresh, self.refresh_class)
        except TokenRejected as exc:
            raise RefreshRejected(str(exc.detail), exc.code)

        try:
            account = Account.objects.get(pk=token["user_id"])
        except (Account.DoesNotExist, KeyError):
            raise RefreshRejected()

        if not account.is_active:
            raise AccountDeactivated()

        return account, self.issue(account)

    def revoke(self, token):
        """Blacklist an already validated token (access or refresh)."""
        expires_at = datetime_from_epoch(token["exp"])
        self.blacklist.add(token["jti"], expires_at)
        logger.info("Revoked %s token %s", token.get("token_type", "access"), token["jti"])

    def revoke_raw(self, raw, token_class=None):
        """Best effort revocation of a raw token; invalid tokens are ignored."""
        try:
            token = (token_class or self.refresh_class)(raw)
        except TokenError:
            return False
        self.revoke(token)
        return True


tokens = TokenService()

# exam_core/services/oauth.py
import logging
from urllib.parse import urlencode

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from ..exceptions import AccountDeactivated, OAuthFailed
from ..utils.helper import split_name

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
SCOPES = [
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]


class GoogleOAuthClient:
    """Authorization-code flow against Google. Every provider failure surfaces as OAuthFailed."""

    def __init__(self, config=None, session=None):
        self.config = config or settings.GOOGLE_OAUTH
        self.session = session or requests

    @property
    def timeout(self):
        return self.config.get("TIMEOUT", 10)

    def authorization_url(self):
        params = {
            "client_id": self.config["CLIENT_ID"],
            "redirect_uri": self.config["REDIRECT_URI"],
            "scope": " ".join(SCOPES),
            "response_type": "code",
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code):
        if not code:
            raise OAuthFailed("Authorization code is required.")
        try:
            r = self.session.post(
                TOKEN_URL,
                data={
                    "client_id": self.config["CLIENT_ID"],
                    "client_secret": self.config["CLIENT_SECRET"],
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.config["REDIRECT_URI"],
                },
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Google code exchange failed: %s", exc)
            raise OAuthFailed("Failed to exchange authorization code.")

        access_token = data.get("access_token")
        if not access_token:
            raise OAuthFailed("Identity provider returned no access token.")
        return access_token

    def fetch_user_info(self, access_token):
        try:
            r = self.session.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            info = r.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Google user info request failed: %s", exc)
            raise OAuthFailed("Failed to get user info from the identity provider.")

        if not info.get("id") or not info.get("email"):
            raise OAuthFailed("Identity provider did not return a verified email.")
        return info

    def authenticate(self, code):
        """Exchange ``code`` and return the provider's profile for the signed-in user."""
        return self.fetch_user_info(self.exchange_code(code))



@transaction.atomic
def link_google_account(info):
    """
    Map a verified Google profile to a local account.

    Lookup order is the Google subject id, then the email. A matching email
    account gets the Google id attached; otherwise a Student account without
    a usable password is created. Returns ``(account, created)``.
    """
    Account = get_user_model()
    google_id = str(info["id"])
    email = info["email"].strip().lower()
    name = info.get("name") or email.split("@")[0]
    avatar = info.get("picture") or ""

    account = Account.objects.filter(google_id=google_id).first()
    created = False

    if account is None:
        account = Account.objects.filter(email__iexact=email).first()
        if account is not None:
            account.google_id = google_id
            account.is_email_verified = True
            if avatar and not account.avatar:
                account.avatar = avatar
            account.save(update_fields=["google_id", "is_email_verified", "avatar"])
            logger.info("Linked Google identity to account %s", account.pk)

    if account is None:
        first_name, last_name = split_name(name)
        account = Account.objects.create_user(
            email=email,
            password=None,
            name=name,
            first_name=first_name,
            last_name=last_name,
            google_id=google_id,
            avatar=avatar,
            is_email_verified=True,
        )
        created = True
        logger.info("Created account %s from Google sign-in", account.pk)

    if not account.is_active:
        raise AccountDeactivated()

    return account, created

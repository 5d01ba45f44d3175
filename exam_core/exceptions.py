from rest_framework import exceptions, status



class PlatformError(exceptions.APIException):
    """
    Base class for domain errors. Every error carries a stable machine-readable
    ``code`` next to the human message, plus optional context that is merged
    into the response body.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."
    default_code = "ERROR"

    def __init__(self, detail=None, code=None, **context):
        super().__init__(detail, code)
        self.code = code or self.default_code
        self.context = context



class UserExists(PlatformError):
    default_detail = "User with this email already exists."
    default_code = "USER_EXISTS"


class InvalidCredentials(PlatformError):
    default_detail = "Invalid email or password."
    default_code = "INVALID_CREDENTIALS"


class AccountLocked(PlatformError):
    status_code = 423
    default_detail = "Account is temporarily locked due to multiple failed login attempts."
    default_code = "ACCOUNT_LOCKED"


class AccountDeactivated(PlatformError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Account is deactivated."
    default_code = "ACCOUNT_DEACTIVATED"


class OAuthFailed(PlatformError):
    default_detail = "Authentication with the identity provider failed."
    default_code = "OAUTH_FAILED"


class ResourceNotFound(PlatformError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."
    default_code = "RESOURCE_NOT_FOUND"


class Conflict(PlatformError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state."
    default_code = "CONFLICT"



# Authentication failures. Subclassing AuthenticationFailed lets DRF attach
# the WWW-Authenticate header and answer 401.

class TokenRejected(PlatformError, exceptions.AuthenticationFailed):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid token."
    default_code = "INVALID_TOKEN"


class TokenExpired(TokenRejected):
    default_detail = "Token has expired. Please login again."
    default_code = "TOKEN_EXPIRED"


class TokenBlacklisted(TokenRejected):
    default_detail = "Token has been invalidated. Please login again."
    default_code = "TOKEN_BLACKLISTED"


class RoleChanged(TokenRejected):
    default_detail = "User role has changed. Please login again."
    default_code = "ROLE_CHANGED"


class UnknownAccount(TokenRejected):
    default_detail = "User not found."
    default_code = "USER_NOT_FOUND"


class RefreshRejected(PlatformError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid refresh token."
    default_code = "INVALID_REFRESH_TOKEN"



# Status codes for authorization denials. Everything not listed is a 403.
DENIAL_STATUS = {
    "EXAM_ALREADY_STARTED": status.HTTP_400_BAD_REQUEST,
}


class AccessDenied(PlatformError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied."
    default_code = "ACCESS_DENIED"

    @classmethod
    def from_decision(cls, decision):
        error = cls(decision.message, decision.code, **decision.context)
        error.status_code = DENIAL_STATUS.get(decision.code, status.HTTP_403_FORBIDDEN)
        return error

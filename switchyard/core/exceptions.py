"""Exception hierarchy for authentication, federation and store failures.

Authorization decisions are plain booleans and never raise. Everything here
carries a human-readable ``message`` that the HTTP layer may show; none of
them embed token values or password material.
"""


class SwitchyardError(Exception):
    """Base class for every error raised by switchyard services."""

    default_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# --- configuration ---


class ConfigError(SwitchyardError):
    """Invalid or missing configuration; fatal at startup."""

    default_message = "Invalid configuration"


class ProviderInitError(ConfigError):
    """OpenID provider discovery failed (unreachable or malformed metadata)."""

    default_message = "OpenID provider initialisation failed"


# --- authentication ---


class AuthenticationError(SwitchyardError):
    """Base class for failures the transport maps to 401/403."""

    default_message = "Authentication failed"


class InvalidCredentialsError(AuthenticationError):
    default_message = "Invalid username or password"


class UserNotFoundError(AuthenticationError):
    default_message = "User not found"


class UserInactiveError(AuthenticationError):
    default_message = "User account is inactive"


class TokenInvalidError(AuthenticationError):
    default_message = "Invalid token"


class TokenExpiredError(TokenInvalidError):
    default_message = "Token has expired"


class UnauthenticatedError(AuthenticationError):
    """Raised by the request authenticator when no usable identity is present."""

    default_message = "Not authenticated"


class InvalidStateError(AuthenticationError):
    default_message = "Invalid state parameter"


class IDTokenMissingError(AuthenticationError):
    default_message = "No id_token in token response"


# --- federation ---


class OpenIDError(SwitchyardError):
    """Base class for OpenID Connect protocol failures."""

    default_message = "OpenID Connect error"


class ExchangeFailedError(OpenIDError):
    default_message = "Failed to exchange authorization code"


class IDTokenInvalidError(OpenIDError, AuthenticationError):
    default_message = "ID token verification failed"


class ClaimsParseFailedError(OpenIDError):
    default_message = "Failed to parse ID token claims"


# --- crypto and storage ---


class HashError(SwitchyardError):
    """Stored password digest is not a valid bcrypt hash."""

    default_message = "Malformed password hash"


class StoreFailureError(SwitchyardError):
    """The persistent store could not complete an operation."""

    default_message = "Store operation failed"

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class RoleNotFoundError(SwitchyardError):
    default_message = "Role not found"


class UserAlreadyExistsError(SwitchyardError):
    default_message = "User already exists"


class RoleAlreadyExistsError(SwitchyardError):
    default_message = "Role already exists"


class InvalidUsernameError(SwitchyardError):
    default_message = "Username must be letters, digits, '_' or '-', or an email address"


class ApiTokenNotFoundError(SwitchyardError):
    default_message = "API token not found"


class ApiTokenAlreadyExistsError(SwitchyardError):
    default_message = "API token with this name already exists"


class InvalidApiTokenNameError(SwitchyardError):
    default_message = "API token name must be 1-300 characters"

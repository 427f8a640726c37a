"""Account registration and login."""

from .auth_service import AuthResult, AuthService, InvalidCredentialsError, Registration  # noqa: F401

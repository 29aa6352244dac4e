"""Exceptions raised by the authentication and recovery flows."""

from typing import Dict, List, Optional


class AuthError(RuntimeError):
    """Base class for failures reported to the user by a flow controller."""


class ValidationError(AuthError):
    """One or more fields failed local validation.

    Never reaches a collaborator. ``errors`` maps field names to messages.
    """

    def __init__(self, errors: Dict[str, str],
                 message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        super(ValidationError, self).__init__(
            message or 'Please fix the errors in the form'
        )


class WeakCredentialError(ValidationError):
    """The new secret does not satisfy the strength policy."""

    def __init__(self, missing: List[str],
                 errors: Optional[Dict[str, str]] = None,
                 field: str = 'new_secret') -> None:
        self.missing = list(missing)
        message = f'Password must contain {", ".join(self.missing)}'
        errors = dict(errors or {})
        errors[field] = message
        super(WeakCredentialError, self).__init__(errors, message)


class InvalidCredentials(AuthError):
    """The credential store rejected the identifier/secret pair."""


class InvalidTokenError(AuthError):
    """The token issuer rejected a recovery token."""


class InvalidCodeError(AuthError):
    """The one-time code did not match."""


class IncompleteCodeError(AuthError):
    """The one-time code does not have the required length."""


class ConnectivityError(AuthError):
    """A collaborator could not be reached or failed."""


class RequestInProgress(AuthError):
    """A request for the same operation is already outstanding."""


class CooldownActive(AuthError):
    """Resend was requested before the cooldown elapsed."""


class Unavailable(RuntimeError):
    """Raised by a collaborator when its backing service is unreachable."""


class RequestRejected(AuthError):
    """A collaborator declined the request without giving a reason."""


class InvalidTransition(AuthError):
    """The action is not available in the current state of the flow."""

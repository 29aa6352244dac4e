"""Defines the core data structures for the authentication flows."""

from typing import Optional, NamedTuple
from enum import Enum


class CredentialAttempt(NamedTuple):
    """An identifier/secret pair submitted for authentication."""

    identifier: str
    """Email address or phone number."""

    secret: str


class RecoveryStage(Enum):
    """Progress of a :class:`RecoveryRequest`. Only ever moves forward."""

    REQUESTED = 'requested'
    REDEEMED = 'redeemed'
    COMPLETE = 'complete'


STAGE_ORDER = [RecoveryStage.REQUESTED, RecoveryStage.REDEEMED,
               RecoveryStage.COMPLETE]


class RecoveryRequest(NamedTuple):
    """A password recovery in progress."""

    contact_email: str = ''
    step: Optional[RecoveryStage] = None
    """None until the issuer has confirmed the request."""

    issued_token: Optional[str] = None
    """Only populated after the issuer confirms a request."""

    def advance(self, step: RecoveryStage) -> 'RecoveryRequest':
        """Move to ``step``, which must not be behind the current step."""
        if self.step is not None \
                and STAGE_ORDER.index(step) < STAGE_ORDER.index(self.step):
            raise ValueError(f'Cannot move from {self.step} to {step}')
        return self._replace(step=step)


class NewCredentialSubmission(NamedTuple):
    """A token redemption with the new secret entered twice."""

    token: str
    new_secret: str
    confirm_secret: str


class StrengthScore(NamedTuple):
    """Strength of a candidate secret."""

    WEAK = 'Weak'       # type: ignore
    FAIR = 'Fair'       # type: ignore
    GOOD = 'Good'       # type: ignore
    STRONG = 'Strong'   # type: ignore

    score: int
    """Between 0 and 5."""

    label: str


class ChallengeSession(NamedTuple):
    """State of a one-time code challenge."""

    code: str = ''
    seconds_remaining: int = 0
    resend_available: bool = False


class AuthenticationResult(NamedTuple):
    """Response from the credential store."""

    ok: bool


class RecoveryTokenResult(NamedTuple):
    """Response from the token issuer to a recovery request."""

    ok: bool
    token: Optional[str] = None
    """Only present when the issuer chooses to reveal it."""


class RedemptionResult(NamedTuple):
    """Response from the token issuer to a redemption."""

    ok: bool


class CodeVerification(NamedTuple):
    """Response from the code channel to a verification."""

    matched: bool

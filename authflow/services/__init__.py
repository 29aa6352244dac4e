"""
Contracts for the external collaborators used by the flow controllers.

The controllers depend only on these protocols. Collaborators signal that
their backing service is unreachable by raising
:class:`authflow.exceptions.Unavailable`; a negative answer is reported in
the result, never by raising.

The modules in this package provide in-memory reference implementations for
demonstrations and tests. They are not a storage design.
"""

from typing import Optional, Protocol

from ..domain import AuthenticationResult, RecoveryTokenResult, \
    RedemptionResult, CodeVerification


class CredentialStore(Protocol):
    """Authenticates identifier/secret pairs."""

    async def authenticate(self, identifier: str,
                           secret: str) -> AuthenticationResult:
        ...

    async def change_secret(self, identifier: str, current_secret: str,
                            new_secret: str) -> AuthenticationResult:
        ...


class RecoveryTokenIssuer(Protocol):
    """Mints and redeems recovery tokens with a fixed time-to-live."""

    ttl_minutes: int
    """How long an issued token stays valid."""

    async def request_recovery_token(self, email: str) -> RecoveryTokenResult:
        ...

    async def redeem_recovery_token(self, token: str,
                                    new_secret: str) -> RedemptionResult:
        ...


class OneTimeCodeChannel(Protocol):
    """Issues one-time codes out of band and verifies them."""

    async def issue_one_time_code(self) -> Optional[str]:
        """Issue and deliver a new code.

        May return the code, which callers must only surface when secrets
        are revealed for testing.
        """
        ...

    async def verify_one_time_code(self, code: str) -> CodeVerification:
        ...

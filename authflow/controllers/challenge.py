"""
Privileged-access challenge controller.

Before an administrator is granted elevated access, a one-time code is sent
to them out of band and must be entered here. Resending is blocked by a
cooldown countdown. The countdown and code entry are independent: typing a
code does not pause the countdown, and the countdown expiring does not
invalidate a code that has already been entered.
"""

from typing import Callable, NamedTuple, Optional
from enum import Enum

from .. import config, logging
from ..countdown import Countdown
from ..domain import ChallengeSession
from ..exceptions import ConnectivityError, CooldownActive, \
    IncompleteCodeError, InvalidCodeError, InvalidTransition, \
    RequestInProgress
from ..services import OneTimeCodeChannel
from ..state import Flow

logger = logging.getLogger(__name__)

INCOMPLETE = 'Please enter complete OTP'
INVALID = 'Invalid OTP. Please try again.'
UNREACHABLE = 'Could not reach the verification service. Please try again.'
SENT = "We've sent a {}-digit code to your registered admin email"
RESENT = 'OTP resent successfully'
VERIFIED = 'Admin verification successful'


class ChallengeStatus(Enum):
    """States of the challenge."""

    AWAITING_CODE = 'awaiting_code'
    VERIFYING = 'verifying'
    VERIFIED = 'verified'


class ChallengeState(NamedTuple):
    """Observable state of the challenge."""

    status: ChallengeStatus = ChallengeStatus.AWAITING_CODE
    session: ChallengeSession = ChallengeSession()
    error: Optional[str] = None
    notice: Optional[str] = None
    revealed_code: Optional[str] = None
    """The issued code, only when secrets are revealed for testing."""


class ChallengeController(Flow):
    """Gates privileged access behind a one-time code."""

    def __init__(self, channel: OneTimeCodeChannel,
                 on_verified: Optional[Callable[[], None]] = None,
                 on_back: Optional[Callable[[], None]] = None,
                 code_length: int = config.ONE_TIME_CODE_LENGTH,
                 window: int = config.CHALLENGE_WINDOW_SECONDS,
                 tick_interval: float = config.TICK_INTERVAL,
                 reveal_secrets_for_testing: bool =
                 config.REVEAL_SECRETS_FOR_TESTING) -> None:
        super(ChallengeController, self).__init__(ChallengeState(
            session=ChallengeSession(seconds_remaining=window)
        ))
        self.channel = channel
        self.on_verified = on_verified
        self.on_back = on_back
        self.code_length = code_length
        self.reveal_secrets_for_testing = reveal_secrets_for_testing
        self.countdown = Countdown(window, tick_interval,
                                   on_tick=self._on_tick)
        self._resending = False

    @property
    def can_verify(self) -> bool:
        """True when a complete code is entered and nothing is outstanding."""
        return self.state.status is ChallengeStatus.AWAITING_CODE \
            and len(self.state.session.code) == self.code_length

    def _on_tick(self, remaining: int) -> None:
        self._update(session=self.state.session._replace(
            seconds_remaining=remaining,
            resend_available=remaining == 0
        ))

    def _set_code(self, code: str) -> None:
        if self.state.status is not ChallengeStatus.AWAITING_CODE:
            raise RequestInProgress('Code entry is closed')
        self._update(
            session=self.state.session._replace(code=code[:self.code_length]),
            error=None
        )

    def enter(self, characters: str) -> None:
        """Append to the code, up to its required length."""
        self._set_code(self.state.session.code + characters)

    def set_code(self, code: str) -> None:
        """Replace the code."""
        self._set_code(code)

    def clear(self) -> None:
        """Clear the code."""
        self._set_code('')

    async def mount(self) -> None:
        """Start the cooldown and request the first code."""
        self.countdown.start()
        await self._issue(SENT.format(self.code_length))

    async def _issue(self, notice: str) -> bool:
        """Request a code; False if the response arrived after teardown."""
        generation = self._generation
        try:
            code = await self._collaborate(self.channel.issue_one_time_code(),
                                           'code issue', UNREACHABLE)
        except ConnectivityError as e:
            if not self._stale(generation):
                self._update(error=str(e))
            raise
        if self._stale(generation):
            return False
        self._update(
            notice=notice, error=None,
            revealed_code=code if self.reveal_secrets_for_testing else None
        )
        return True

    async def verify(self) -> bool:
        """
        Verify the entered code.

        Returns
        -------
        bool
            True if verified. False only if the challenge was torn down while
            verification was outstanding.

        Raises
        ------
        :class:`.IncompleteCodeError`
            The code does not have the required length. Nothing is sent.
        :class:`.InvalidCodeError`
            The code did not match. The entered code is cleared.
        :class:`.RequestInProgress`
            A verification is already outstanding.
        :class:`.ConnectivityError`
            The code channel could not be reached.

        """
        if self.state.status is ChallengeStatus.VERIFYING:
            raise RequestInProgress('Verification already in progress')
        if self.state.status is ChallengeStatus.VERIFIED:
            raise InvalidTransition('Already verified')
        code = self.state.session.code
        if len(code) != self.code_length:
            self._update(error=INCOMPLETE)
            raise IncompleteCodeError(INCOMPLETE)

        generation = self._generation
        self._update(status=ChallengeStatus.VERIFYING, error=None)
        try:
            result = await self._collaborate(
                self.channel.verify_one_time_code(code),
                'code verification', UNREACHABLE
            )
        except ConnectivityError as e:
            if self._stale(generation):
                return False
            self._update(status=ChallengeStatus.AWAITING_CODE, error=str(e))
            raise
        if self._stale(generation):
            return False

        if not result.matched:
            logger.debug('One-time code did not match')
            self._update(status=ChallengeStatus.AWAITING_CODE, error=INVALID,
                         session=self.state.session._replace(code=''))
            raise InvalidCodeError(INVALID)

        logger.info('Privileged-access challenge passed')
        self.countdown.stop()
        self._update(status=ChallengeStatus.VERIFIED, notice=VERIFIED,
                     revealed_code=None)
        if self.on_verified is not None:
            self.on_verified()
        return True

    async def resend(self) -> None:
        """
        Request a new code, then restart the cooldown.

        If the code cannot be sent the cooldown stays at zero, so the user
        can try again straight away.

        Raises
        ------
        :class:`.CooldownActive`
            The cooldown has not reached zero.
        :class:`.RequestInProgress`
            A resend is already outstanding.
        :class:`.ConnectivityError`
            The code channel could not be reached.

        """
        if self.state.status is ChallengeStatus.VERIFIED:
            raise InvalidTransition('Already verified')
        if not self.state.session.resend_available:
            message = (f'You can resend the code in'
                       f' {self.state.session.seconds_remaining}s')
            self._update(error=message)
            raise CooldownActive(message)
        if self._resending:
            raise RequestInProgress('A new code has already been requested')
        logger.debug('Resending one-time code')
        self._resending = True
        try:
            issued = await self._issue(RESENT)
        finally:
            self._resending = False
        if issued:
            self.countdown.restart()

    def back(self) -> None:
        """Leave the challenge."""
        self.close()
        if self.on_back is not None:
            self.on_back()

    def close(self) -> None:
        """Stop the countdown and ignore any outstanding response."""
        self._invalidate()
        self.countdown.stop()

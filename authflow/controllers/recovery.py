"""
Password recovery controller.

Recovery happens in two phases. The user first requests a reset for their
email address; the token issuer mints a token and sends it out of band. The
user then redeems the token together with a new password (entered twice).
Once the issuer accepts the redemption the flow reaches ``SUCCESS``, and the
completion callback fires after a short delay so that the success message
can be read.

Tokens are opaque to this controller: only their presence is checked here.
Expiry and single use are enforced by the issuer. If a token is already known
when the flow starts (e.g. from a link), the request phase is skipped.
"""

from typing import Callable, Mapping, NamedTuple, Optional
from enum import Enum
import asyncio

from .. import config, logging
from ..domain import NewCredentialSubmission, RecoveryRequest, \
    RecoveryStage, StrengthScore
from ..exceptions import ConnectivityError, InvalidTokenError, \
    InvalidTransition, RequestInProgress, RequestRejected, ValidationError
from ..services import RecoveryTokenIssuer
from ..state import NO_ERRORS, Flow
from ..validation import NewCredentialForm, RecoveryRequestForm, \
    check_new_secret, form_data, form_errors, strength

logger = logging.getLogger(__name__)

GENERAL = 'general'
FORM_ERRORS = 'Please fix the errors in the form'
REQUEST_SENT = ('If an account with this email exists, a password reset'
                ' link will be sent.')
REQUEST_FAILED = 'Failed to process password reset request'
REDEEM_FAILED = 'Password reset failed. Please check your connection.'
INVALID_TOKEN = 'Invalid or expired reset token'
RESET_DONE = 'Password reset successful!'


class RecoveryStep(Enum):
    """Steps of the recovery flow."""

    EMAIL_ENTRY = 'email_entry'
    TOKEN_OR_PASSWORD_ENTRY = 'token_or_password_entry'
    SUCCESS = 'success'


class RecoveryState(NamedTuple):
    """Observable state of the recovery flow."""

    step: RecoveryStep = RecoveryStep.EMAIL_ENTRY
    request: RecoveryRequest = RecoveryRequest()
    email: str = ''
    token: str = ''
    new_secret: str = ''
    confirm_secret: str = ''
    strength: StrengthScore = StrengthScore(score=0, label=StrengthScore.WEAK)
    errors: Mapping[str, str] = NO_ERRORS
    notice: Optional[str] = None
    """Transient notification for the user."""

    loading: bool = False


class RecoveryController(Flow):
    """Drives a single password recovery."""

    FIELDS = ('email', 'token', 'new_secret', 'confirm_secret')

    def __init__(self, issuer: RecoveryTokenIssuer,
                 token: Optional[str] = None,
                 on_complete: Optional[Callable[[], None]] = None,
                 on_cancel: Optional[Callable[[], None]] = None,
                 reveal_secrets_for_testing: bool =
                 config.REVEAL_SECRETS_FOR_TESTING,
                 success_delay: float = config.RECOVERY_SUCCESS_DELAY) -> None:
        self.issuer = issuer
        self.on_complete = on_complete
        self.on_cancel = on_cancel
        self.reveal_secrets_for_testing = reveal_secrets_for_testing
        self.success_delay = success_delay
        self._initial_token = token or ''
        self._completion: Optional[asyncio.TimerHandle] = None
        super(RecoveryController, self).__init__(self._initial_state())

    @property
    def token_notice(self) -> str:
        """Tells the user how long the issuer keeps a token valid."""
        return (f'Check your email for a reset token. It expires in'
                f' {self.issuer.ttl_minutes} minutes.')

    def _initial_state(self) -> RecoveryState:
        if self._initial_token.strip():
            return RecoveryState(step=RecoveryStep.TOKEN_OR_PASSWORD_ENTRY,
                                 token=self._initial_token)
        return RecoveryState()

    def _require(self, step: RecoveryStep) -> None:
        if self.state.step is not step:
            raise InvalidTransition(f'Not available in {self.state.step.name}')
        if self.state.loading:
            raise RequestInProgress('A request is already in progress')

    def edit(self, field: str, value: str) -> None:
        """Update a field and clear its error."""
        if field not in self.FIELDS:
            raise ValueError(f'No such field: {field}')
        errors = {k: v for k, v in self.state.errors.items()
                  if k not in (field, GENERAL)}
        changes = {field: value, 'errors': errors}
        if field == 'new_secret':
            changes['strength'] = strength(value)
        self._update(**changes)

    async def request(self, email: Optional[str] = None) -> bool:
        """
        Ask the issuer to send a recovery token to ``email``.

        Raises
        ------
        :class:`.ValidationError`
            The email address is empty or malformed. The issuer is not called.
        :class:`.RequestRejected`
            The issuer declined the request.
        :class:`.ConnectivityError`
            The issuer could not be reached.

        """
        self._require(RecoveryStep.EMAIL_ENTRY)
        if email is not None:
            self._update(email=email)

        form = RecoveryRequestForm(form_data(email=self.state.email))
        if not form.validate():
            errors = form_errors(form)
            logger.debug('Recovery request form is not valid')
            self._update(errors=errors, notice=errors['email'])
            raise ValidationError(errors, errors['email'])

        contact_email = self.state.email.strip()
        generation = self._generation
        self._update(loading=True, errors=NO_ERRORS, notice=None)
        try:
            result = await self._collaborate(
                self.issuer.request_recovery_token(contact_email),
                'recovery request', REQUEST_FAILED
            )
        except ConnectivityError as e:
            if self._stale(generation):
                return False
            self._update(loading=False, errors={GENERAL: str(e)},
                         notice=str(e))
            raise
        if self._stale(generation):
            return False

        if not result.ok:
            self._update(loading=False, errors={GENERAL: REQUEST_FAILED},
                         notice=REQUEST_FAILED)
            raise RequestRejected(REQUEST_FAILED)

        revealed = result.token if self.reveal_secrets_for_testing else None
        request = RecoveryRequest(contact_email=contact_email,
                                  issued_token=revealed) \
            .advance(RecoveryStage.REQUESTED)
        logger.debug('Recovery requested; awaiting token redemption')
        self._update(step=RecoveryStep.TOKEN_OR_PASSWORD_ENTRY,
                     request=request, token=revealed or self.state.token,
                     loading=False, notice=REQUEST_SENT)
        return True

    async def redeem(self, token: Optional[str] = None,
                     new_secret: Optional[str] = None,
                     confirm_secret: Optional[str] = None) -> bool:
        """
        Redeem the token and set the new password.

        Raises
        ------
        :class:`.WeakCredentialError`
            The new password is below the strength threshold.
        :class:`.ValidationError`
            A field is missing or the passwords do not match.
        :class:`.InvalidTokenError`
            The issuer rejected the token.
        :class:`.ConnectivityError`
            The issuer could not be reached.

        """
        self._require(RecoveryStep.TOKEN_OR_PASSWORD_ENTRY)
        for field, value in (('token', token), ('new_secret', new_secret),
                             ('confirm_secret', confirm_secret)):
            if value is not None:
                self.edit(field, value)

        form = NewCredentialForm(form_data(
            token=self.state.token,
            new_secret=self.state.new_secret,
            confirm_secret=self.state.confirm_secret
        ))
        try:
            check_new_secret(form)
        except ValidationError as e:
            logger.debug('New credential form is not valid: %s',
                         sorted(e.errors))
            self._update(errors=e.errors, notice=FORM_ERRORS)
            raise

        submission = NewCredentialSubmission(
            token=self.state.token.strip(),
            new_secret=self.state.new_secret,
            confirm_secret=self.state.confirm_secret
        )
        generation = self._generation
        self._update(loading=True, errors=NO_ERRORS, notice=None)
        try:
            result = await self._collaborate(
                self.issuer.redeem_recovery_token(submission.token,
                                                  submission.new_secret),
                'token redemption', REDEEM_FAILED
            )
        except ConnectivityError as e:
            if self._stale(generation):
                return False
            self._update(loading=False, errors={GENERAL: str(e)},
                         notice=str(e))
            raise
        if self._stale(generation):
            return False

        if not result.ok:
            self._update(loading=False, errors={'token': INVALID_TOKEN},
                         notice=INVALID_TOKEN)
            raise InvalidTokenError(INVALID_TOKEN)

        logger.info('Password reset completed')
        self._initial_token = ''
        redeemed = self.state.request.advance(RecoveryStage.REDEEMED)
        self._update(step=RecoveryStep.SUCCESS, request=redeemed,
                     new_secret='', confirm_secret='', strength=strength(''),
                     loading=False, notice=RESET_DONE)
        self._completion = asyncio.get_running_loop().call_later(
            self.success_delay, self._complete, generation
        )
        return True

    def _complete(self, generation: int) -> None:
        self._completion = None
        if self._stale(generation):
            return
        self._update(
            request=self.state.request.advance(RecoveryStage.COMPLETE)
        )
        self._update(request=RecoveryRequest())
        if self.on_complete is not None:
            self.on_complete()

    def cancel(self) -> None:
        """Abandon the flow, discarding everything entered so far."""
        logger.debug('Recovery cancelled in %s', self.state.step.name)
        self.close()
        self._replace_state(self._initial_state())
        if self.on_cancel is not None:
            self.on_cancel()

    def close(self) -> None:
        """Release the pending completion and ignore outstanding responses."""
        self._invalidate()
        if self._completion is not None:
            self._completion.cancel()
            self._completion = None

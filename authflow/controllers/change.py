"""Change-password controller for an authenticated user."""

from typing import Callable, Mapping, NamedTuple, Optional
import asyncio

from .. import config, logging
from ..domain import StrengthScore
from ..exceptions import ConnectivityError, InvalidCredentials, \
    RequestInProgress, ValidationError
from ..services import CredentialStore
from ..state import NO_ERRORS, Flow
from ..validation import ChangeCredentialForm, check_new_secret, form_data, \
    strength

logger = logging.getLogger(__name__)

GENERAL = 'general'
WRONG_CURRENT = 'Current password is incorrect'
UNREACHABLE = 'Password change failed. Please check your connection.'


class ChangeState(NamedTuple):
    """Observable state of the change-password form."""

    current_secret: str = ''
    new_secret: str = ''
    confirm_secret: str = ''
    strength: StrengthScore = StrengthScore(score=0, label=StrengthScore.WEAK)
    errors: Mapping[str, str] = NO_ERRORS
    submitting: bool = False
    changed: bool = False


class ChangeCredentialController(Flow):
    """Changes the password of the account identified by ``identifier``."""

    FIELDS = ('current_secret', 'new_secret', 'confirm_secret')

    def __init__(self, credentials: CredentialStore, identifier: str,
                 on_success: Optional[Callable[[], None]] = None,
                 success_delay: float = config.CHANGE_SUCCESS_DELAY) -> None:
        super(ChangeCredentialController, self).__init__(ChangeState())
        self.credentials = credentials
        self.identifier = identifier
        self.on_success = on_success
        self.success_delay = success_delay
        self._pending: Optional[asyncio.TimerHandle] = None

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

    async def submit(self, current_secret: Optional[str] = None,
                     new_secret: Optional[str] = None,
                     confirm_secret: Optional[str] = None) -> bool:
        """
        Change the password.

        Raises
        ------
        :class:`.WeakCredentialError`
            The new password is below the strength threshold.
        :class:`.ValidationError`
            A field is missing, the passwords do not match, or the new
            password is the same as the current one.
        :class:`.InvalidCredentials`
            The current password is wrong.
        :class:`.ConnectivityError`
            The credential store could not be reached.

        """
        if self.state.submitting:
            raise RequestInProgress('Password change already in progress')
        for field, value in (('current_secret', current_secret),
                             ('new_secret', new_secret),
                             ('confirm_secret', confirm_secret)):
            if value is not None:
                self.edit(field, value)

        form = ChangeCredentialForm(form_data(
            current_secret=self.state.current_secret,
            new_secret=self.state.new_secret,
            confirm_secret=self.state.confirm_secret
        ))
        try:
            check_new_secret(form)
        except ValidationError as e:
            self._update(errors=e.errors)
            raise

        generation = self._generation
        self._update(submitting=True, errors=NO_ERRORS)
        try:
            result = await self._collaborate(
                self.credentials.change_secret(self.identifier,
                                               self.state.current_secret,
                                               self.state.new_secret),
                'password change', UNREACHABLE
            )
        except ConnectivityError as e:
            if self._stale(generation):
                return False
            self._update(submitting=False, errors={GENERAL: str(e)})
            raise
        if self._stale(generation):
            return False

        if not result.ok:
            self._update(submitting=False,
                         errors={'current_secret': WRONG_CURRENT})
            raise InvalidCredentials(WRONG_CURRENT)

        logger.info('Password changed')
        self._replace_state(ChangeState(changed=True))
        self._pending = asyncio.get_running_loop().call_later(
            self.success_delay, self._succeed, generation
        )
        return True

    def _succeed(self, generation: int) -> None:
        self._pending = None
        if not self._stale(generation) and self.on_success is not None:
            self.on_success()

    def close(self) -> None:
        """Release the pending callback and ignore outstanding responses."""
        self._invalidate()
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

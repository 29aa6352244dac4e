"""
Login controller.

The controller owns the login form and submits it to the credential store.
Unknown identifiers and wrong secrets produce the same generic error, so that
the form cannot be used to discover which accounts exist.
"""

from typing import Callable, Mapping, NamedTuple, Optional

from .. import logging
from ..domain import CredentialAttempt
from ..exceptions import ConnectivityError, InvalidCredentials, \
    RequestInProgress, ValidationError
from ..services import CredentialStore
from ..state import NO_ERRORS, Flow
from ..validation import LoginForm, form_data, form_errors

logger = logging.getLogger(__name__)

GENERAL = 'general'
INVALID_CREDENTIALS = ('Invalid email/phone or password. Please check your'
                       ' credentials and try again.')
CONNECTIVITY = 'Login failed. Please check your connection and try again.'


class LoginState(NamedTuple):
    """Observable state of the login form."""

    identifier: str = ''
    secret: str = ''
    errors: Mapping[str, str] = NO_ERRORS
    """Field name, or ``general``, to message."""

    submitting: bool = False
    authenticated: bool = False


class LoginController(Flow):
    """Submits credentials to a :class:`.CredentialStore`."""

    FIELDS = ('identifier', 'secret')

    def __init__(self, credentials: CredentialStore,
                 on_success: Optional[Callable[[str], None]] = None) -> None:
        super(LoginController, self).__init__(LoginState())
        self.credentials = credentials
        self.on_success = on_success

    def edit(self, field: str, value: str) -> None:
        """Update a field, clearing its error and any general error."""
        if field not in self.FIELDS:
            raise ValueError(f'No such field: {field}')
        errors = {k: v for k, v in self.state.errors.items()
                  if k not in (field, GENERAL)}
        self._update(**{field: value, 'errors': errors})

    async def submit(self, identifier: Optional[str] = None,
                     secret: Optional[str] = None) -> bool:
        """
        Attempt to log in with the current (or given) credentials.

        Returns
        -------
        bool
            True if authenticated. False only if the controller was torn
            down while the request was outstanding.

        Raises
        ------
        :class:`.ValidationError`
            A field is empty. The credential store is not called.
        :class:`.InvalidCredentials`
            The credential store rejected the credentials.
        :class:`.ConnectivityError`
            The credential store could not be reached.
        :class:`.RequestInProgress`
            A submission is already outstanding.

        """
        if self.state.submitting:
            raise RequestInProgress('Login already in progress')
        if identifier is not None:
            self._update(identifier=identifier)
        if secret is not None:
            self._update(secret=secret)

        form = LoginForm(form_data(identifier=self.state.identifier,
                                   secret=self.state.secret))
        if not form.validate():
            logger.debug('Login form is not valid')
            errors = form_errors(form)
            self._update(errors=errors)
            raise ValidationError(errors)

        attempt = CredentialAttempt(identifier=self.state.identifier.strip(),
                                    secret=self.state.secret)
        generation = self._generation
        self._update(submitting=True, errors=NO_ERRORS)
        try:
            result = await self._collaborate(
                self.credentials.authenticate(attempt.identifier,
                                              attempt.secret),
                'authentication', CONNECTIVITY
            )
        except ConnectivityError as e:
            if self._stale(generation):
                return False
            self._update(submitting=False, errors={GENERAL: str(e)})
            raise
        if self._stale(generation):
            return False

        if not result.ok:
            logger.debug('Authentication failed')
            self._update(submitting=False, authenticated=False,
                         errors={GENERAL: INVALID_CREDENTIALS})
            raise InvalidCredentials(INVALID_CREDENTIALS)

        logger.info('Login succeeded')
        self._update(submitting=False, authenticated=True)
        if self.on_success is not None:
            self.on_success(attempt.identifier)
        return True

    def close(self) -> None:
        """Tear down; a response still outstanding will be ignored."""
        self._invalidate()
        self._replace_state(LoginState())

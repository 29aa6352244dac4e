"""Tests for :mod:`authflow.controllers.login`."""

from unittest import IsolatedAsyncioTestCase, mock
import asyncio

from authflow.controllers.login import LoginController, CONNECTIVITY, \
    INVALID_CREDENTIALS
from authflow.domain import AuthenticationResult
from authflow.exceptions import ConnectivityError, InvalidCredentials, \
    RequestInProgress, Unavailable, ValidationError


def credential_store(**kwargs) -> mock.MagicMock:
    credentials = mock.MagicMock()
    credentials.authenticate = mock.AsyncMock(**kwargs)
    return credentials


class TestValidation(IsolatedAsyncioTestCase):
    """Fields are checked before anything is sent."""

    async def test_empty(self):
        """Both fields are required."""
        credentials = credential_store()
        controller = LoginController(credentials)
        with self.assertRaises(ValidationError) as ctx:
            await controller.submit('', '   ')
        self.assertEqual(ctx.exception.errors, {
            'identifier': 'Email or phone number is required',
            'secret': 'Password is required'
        })
        self.assertEqual(controller.state.errors, ctx.exception.errors)
        self.assertFalse(controller.state.submitting)
        credentials.authenticate.assert_not_called()

    async def test_edit_clears_error(self):
        """Editing a field clears its error, and only its error."""
        controller = LoginController(credential_store())
        with self.assertRaises(ValidationError):
            await controller.submit()
        controller.edit('identifier', 'jane@example.org')
        self.assertEqual(controller.state.errors,
                         {'secret': 'Password is required'})

    def test_unknown_field(self):
        """There are only two fields."""
        with self.assertRaises(ValueError):
            LoginController(credential_store()).edit('username', 'jane')


class TestSubmit(IsolatedAsyncioTestCase):
    """Submit credentials to the store."""

    async def test_success(self):
        """Valid credentials authenticate."""
        on_success = mock.MagicMock()
        credentials = credential_store(
            return_value=AuthenticationResult(ok=True)
        )
        controller = LoginController(credentials, on_success=on_success)
        self.assertTrue(await controller.submit(' jane@example.org ', 'x'))
        credentials.authenticate.assert_awaited_once_with(
            'jane@example.org', 'x'
        )
        on_success.assert_called_once_with('jane@example.org')
        self.assertTrue(controller.state.authenticated)
        self.assertFalse(controller.state.submitting)
        self.assertEqual(controller.state.errors, {})

    async def test_rejected(self):
        """Rejected credentials give the generic error."""
        on_success = mock.MagicMock()
        controller = LoginController(
            credential_store(return_value=AuthenticationResult(ok=False)),
            on_success=on_success
        )
        with self.assertRaises(InvalidCredentials):
            await controller.submit('jane@example.org', 'wrong')
        self.assertEqual(controller.state.errors,
                         {'general': INVALID_CREDENTIALS})
        self.assertFalse(controller.state.authenticated)
        on_success.assert_not_called()

    async def test_unavailable(self):
        """A store that cannot be reached is a connectivity failure."""
        credentials = credential_store(side_effect=Unavailable('down'))
        controller = LoginController(credentials)
        with self.assertRaises(ConnectivityError):
            await controller.submit('jane@example.org', 'x')
        self.assertEqual(controller.state.errors, {'general': CONNECTIVITY})
        self.assertFalse(controller.state.submitting)
        self.assertEqual(credentials.authenticate.await_count, 1)

    async def test_idempotent(self):
        """The same submission twice gets the same answer."""
        credentials = credential_store(
            return_value=AuthenticationResult(ok=False)
        )
        controller = LoginController(credentials)
        for _ in range(2):
            with self.assertRaises(InvalidCredentials):
                await controller.submit('jane@example.org', 'wrong')
            self.assertEqual(controller.state.errors,
                             {'general': INVALID_CREDENTIALS})

    async def test_publishes(self):
        """Subscribers see the submission start and finish."""
        controller = LoginController(
            credential_store(return_value=AuthenticationResult(ok=True))
        )
        seen = []
        controller.subscribe(lambda state: seen.append(state.submitting))
        await controller.submit('jane@example.org', 'x')
        self.assertIn(True, seen)
        self.assertFalse(seen[-1])


class TestOutstanding(IsolatedAsyncioTestCase):
    """Behavior while a submission is outstanding."""

    def setUp(self):
        self.gate = asyncio.Event()

        async def authenticate(identifier, secret):
            await self.gate.wait()
            return AuthenticationResult(ok=True)

        self.on_success = mock.MagicMock()
        self.controller = LoginController(
            credential_store(side_effect=authenticate),
            on_success=self.on_success
        )

    async def test_second_submit(self):
        """A second submission is refused."""
        task = asyncio.create_task(
            self.controller.submit('jane@example.org', 'x')
        )
        await asyncio.sleep(0)
        self.assertTrue(self.controller.state.submitting)
        with self.assertRaises(RequestInProgress):
            await self.controller.submit()
        self.gate.set()
        self.assertTrue(await task)

    async def test_closed(self):
        """A response after teardown is ignored."""
        task = asyncio.create_task(
            self.controller.submit('jane@example.org', 'x')
        )
        await asyncio.sleep(0)
        self.controller.close()
        self.gate.set()
        self.assertFalse(await task)
        self.on_success.assert_not_called()
        self.assertFalse(self.controller.state.authenticated)
        self.assertFalse(self.controller.state.submitting)

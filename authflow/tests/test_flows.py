"""Run the flows end to end against the in-memory collaborators."""

from unittest import IsolatedAsyncioTestCase, mock
import asyncio

from authflow.controllers import ChallengeController, \
    ChangeCredentialController, LoginController, RecoveryController, \
    RecoveryStep
from authflow.controllers.login import INVALID_CREDENTIALS
from authflow.exceptions import InvalidCredentials, InvalidTokenError
from authflow.services.codes import OneTimeCodeChannel
from authflow.services.credentials import InMemoryCredentialStore
from authflow.services.mail import Outbox
from authflow.services.tokens import RecoveryTokenIssuer

EMAIL = 'jane@example.org'
SECRET = 'a-recovery-token-signing-secret-of-32-bytes'


class TestForgotPassword(IsolatedAsyncioTestCase):
    """A user forgets their password, resets it, and logs in."""

    def setUp(self):
        self.outbox = Outbox()
        self.store = InMemoryCredentialStore()
        self.store.add(EMAIL, 'Original1', phone='5551234')
        self.issuer = RecoveryTokenIssuer(self.store, secret=SECRET,
                                          outbox=self.outbox, reveal=False)

    async def test_reset_and_login(self):
        """The token arrives out of band and is used once."""
        login = LoginController(self.store)
        with self.assertRaises(InvalidCredentials):
            await login.submit(EMAIL, 'Forgotten1')

        on_complete = mock.MagicMock()
        recovery = RecoveryController(self.issuer, on_complete=on_complete,
                                      success_delay=0)
        await recovery.request(EMAIL)
        self.assertEqual(recovery.state.token, '')
        token = self.outbox.latest(EMAIL).text.split()[5]

        await recovery.redeem(token, 'Replaced2', 'Replaced2')
        self.assertEqual(recovery.state.step, RecoveryStep.SUCCESS)
        await asyncio.sleep(0.01)
        on_complete.assert_called_once_with()

        self.assertTrue(await login.submit('5551234', 'Replaced2'))

        again = RecoveryController(self.issuer, token=token)
        with self.assertRaises(InvalidTokenError):
            await again.redeem(new_secret='Another33',
                               confirm_secret='Another33')

    async def test_locked_out_then_reset(self):
        """A locked account looks like a bad login until it is reset."""
        login = LoginController(self.store)
        for _ in range(5):
            with self.assertRaises(InvalidCredentials):
                await login.submit(EMAIL, 'Guessing1')
        with self.assertRaises(InvalidCredentials):
            await login.submit(EMAIL, 'Original1')
        self.assertEqual(login.state.errors,
                         {'general': INVALID_CREDENTIALS})

        recovery = RecoveryController(self.issuer, success_delay=3600)
        self.addCleanup(recovery.close)
        await recovery.request(EMAIL)
        token = self.outbox.latest(EMAIL).text.split()[5]
        await recovery.redeem(token, 'Replaced2', 'Replaced2')
        self.assertTrue(await login.submit(EMAIL, 'Replaced2'))

    async def test_change_after_login(self):
        """A logged-in user changes their password."""
        login = LoginController(self.store)
        await login.submit(EMAIL, 'Original1')
        change = ChangeCredentialController(self.store, EMAIL,
                                            success_delay=0)
        self.addCleanup(change.close)
        await change.submit('Original1', 'Changed22', 'Changed22')
        self.assertTrue(await LoginController(self.store).submit(
            EMAIL, 'Changed22'
        ))


class TestAdminAccess(IsolatedAsyncioTestCase):
    """An administrator passes the one-time code challenge."""

    async def test_challenge(self):
        outbox = Outbox()
        channel = OneTimeCodeChannel('admin@example.org', outbox=outbox,
                                     latency=0, fixed_code=None)
        on_verified = mock.MagicMock()
        challenge = ChallengeController(channel, on_verified=on_verified,
                                        tick_interval=3600,
                                        reveal_secrets_for_testing=False)
        self.addCleanup(challenge.close)
        await challenge.mount()
        self.assertIsNone(challenge.state.revealed_code)
        code = outbox.latest('admin@example.org').text.split()[-1]
        for digit in code:
            challenge.enter(digit)
        self.assertTrue(await challenge.verify())
        on_verified.assert_called_once_with()

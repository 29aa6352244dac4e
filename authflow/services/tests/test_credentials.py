"""Tests for :mod:`authflow.services.credentials`."""

from datetime import datetime, timedelta
from unittest import TestCase, IsolatedAsyncioTestCase

from pytz import UTC

from authflow.services.credentials import InMemoryCredentialStore, \
    check_secret, hash_secret


class TestHashing(TestCase):
    """Secrets are stored salted and hashed."""

    def test_check(self):
        """A secret checks against its own hash only."""
        encrypted = hash_secret('Foosecret1')
        self.assertNotIn('Foosecret1', encrypted)
        self.assertTrue(check_secret('Foosecret1', encrypted))
        self.assertFalse(check_secret('foosecret1', encrypted))

    def test_salted(self):
        """Hashing the same secret twice gives different hashes."""
        self.assertNotEqual(hash_secret('Foosecret1'),
                            hash_secret('Foosecret1'))


class TestAuthenticate(IsolatedAsyncioTestCase):
    """Authenticate by email or phone."""

    def setUp(self):
        self.store = InMemoryCredentialStore()
        self.store.add('Jane@Example.org', 'Secret123', phone='5551234')

    async def test_email(self):
        """Email addresses are matched without regard to case."""
        result = await self.store.authenticate(' jane@example.org ',
                                               'Secret123')
        self.assertTrue(result.ok)

    async def test_phone(self):
        """A phone number identifies the account too."""
        result = await self.store.authenticate('5551234', 'Secret123')
        self.assertTrue(result.ok)

    async def test_wrong_secret(self):
        """A wrong secret is rejected."""
        result = await self.store.authenticate('jane@example.org', 'nope')
        self.assertFalse(result.ok)

    async def test_unknown(self):
        """An unknown identifier is rejected the same way."""
        result = await self.store.authenticate('joe@example.org', 'Secret123')
        self.assertFalse(result.ok)


class TestChangeSecret(IsolatedAsyncioTestCase):
    """Change a secret given the current one."""

    def setUp(self):
        self.store = InMemoryCredentialStore()
        self.store.add('jane@example.org', 'Secret123')

    async def test_change(self):
        """The new secret replaces the old one."""
        result = await self.store.change_secret('jane@example.org',
                                                'Secret123', 'Better456')
        self.assertTrue(result.ok)
        self.assertFalse(
            (await self.store.authenticate('jane@example.org',
                                           'Secret123')).ok
        )
        self.assertTrue(
            (await self.store.authenticate('jane@example.org',
                                           'Better456')).ok
        )

    async def test_wrong_current(self):
        """Nothing changes if the current secret is wrong."""
        result = await self.store.change_secret('jane@example.org',
                                                'Wrong123', 'Better456')
        self.assertFalse(result.ok)
        self.assertTrue(
            (await self.store.authenticate('jane@example.org',
                                           'Secret123')).ok
        )

    def test_set_unknown(self):
        """Setting the secret of an unknown account fails."""
        self.assertFalse(self.store.set_secret('joe@example.org', 'x'))


class Clock(object):
    """A clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = datetime(2020, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class TestLockout(IsolatedAsyncioTestCase):
    """Repeated failed logins lock the account for a while."""

    def setUp(self):
        self.clock = Clock()
        self.store = InMemoryCredentialStore(max_attempts=5,
                                             lockout_minutes=120,
                                             clock=self.clock)
        self.store.add('jane@example.org', 'Secret123')

    async def fail(self, times: int) -> None:
        for _ in range(times):
            result = await self.store.authenticate('jane@example.org',
                                                   'Wrong123')
            self.assertFalse(result.ok)

    async def login(self) -> bool:
        result = await self.store.authenticate('jane@example.org',
                                               'Secret123')
        return result.ok

    async def test_locked_after_five(self):
        """The fifth failure locks out even the correct secret."""
        await self.fail(4)
        self.assertFalse(
            self.store.is_locked(self.store.get('jane@example.org'))
        )
        await self.fail(1)
        self.assertTrue(
            self.store.is_locked(self.store.get('jane@example.org'))
        )
        self.assertFalse(await self.login())

    async def test_lock_expires(self):
        """The lock lifts after two hours."""
        await self.fail(5)
        self.clock.advance(minutes=119)
        self.assertFalse(await self.login())
        self.clock.advance(minutes=1)
        self.assertTrue(await self.login())
        account = self.store.get('jane@example.org')
        self.assertEqual(account.login_attempts, 0)
        self.assertIsNone(account.lock_until)

    async def test_counting_restarts(self):
        """A failure after an expired lock counts as the first."""
        await self.fail(5)
        self.clock.advance(hours=3)
        await self.fail(1)
        account = self.store.get('jane@example.org')
        self.assertEqual(account.login_attempts, 1)
        self.assertFalse(self.store.is_locked(account))

    async def test_success_clears_count(self):
        """A successful login resets the failure count."""
        await self.fail(4)
        self.assertTrue(await self.login())
        await self.fail(4)
        self.assertTrue(await self.login())

    async def test_reset_unlocks(self):
        """Setting a new secret lifts the lock."""
        await self.fail(5)
        self.assertTrue(self.store.set_secret('jane@example.org', 'Better456'))
        result = await self.store.authenticate('jane@example.org',
                                               'Better456')
        self.assertTrue(result.ok)

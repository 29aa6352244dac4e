"""
In-memory credential store.

Failed logins are counted per account. After ``MAX_LOGIN_ATTEMPTS``
consecutive failures the account is locked for ``LOCKOUT_MINUTES``; while
locked, even the correct secret is refused. A successful login clears the
count, and setting a new secret (e.g. by redeeming a recovery token) clears
the lock. A locked account is reported like any other failure, so callers
cannot tell it apart from a wrong secret.
"""

from typing import Callable, Dict, NamedTuple, Optional
from base64 import b64encode, b64decode
from datetime import datetime, timedelta
import hashlib
import hmac
import secrets

from pytz import UTC

from .. import config, logging
from ..domain import AuthenticationResult
from .mail import mask_address

logger = logging.getLogger(__name__)

SALT_BYTES = 16

Clock = Callable[[], datetime]


def now() -> datetime:
    """The current time, in UTC."""
    return datetime.now(tz=UTC)


def _hash_salt_and_secret(salt: bytes, secret: str) -> bytes:
    return hashlib.sha256(salt + b'-' + secret.encode('utf-8')).digest()


def hash_secret(secret: str) -> str:
    """Generate a salted hash of a secret."""
    salt = secrets.token_bytes(SALT_BYTES)
    hashed = _hash_salt_and_secret(salt, secret)
    return b64encode(salt + hashed).decode('ascii')


def check_secret(secret: str, encrypted: str) -> bool:
    """Check a secret against a salted hash."""
    decoded = b64decode(encrypted)
    salt, expected = decoded[:SALT_BYTES], decoded[SALT_BYTES:]
    return hmac.compare_digest(_hash_salt_and_secret(salt, secret), expected)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Account(NamedTuple):
    """A stored account."""

    email: str
    encrypted: str
    phone: Optional[str] = None
    login_attempts: int = 0
    """Consecutive failed logins."""

    lock_until: Optional[datetime] = None


class InMemoryCredentialStore(object):
    """
    Credential store backed by a dict.

    Accounts are addressed by email address or phone number.
    """

    def __init__(self, max_attempts: int = config.MAX_LOGIN_ATTEMPTS,
                 lockout_minutes: int = config.LOCKOUT_MINUTES,
                 clock: Clock = now) -> None:
        self.max_attempts = max_attempts
        self.lockout = timedelta(minutes=lockout_minutes)
        self._clock = clock
        self._accounts: Dict[str, Account] = {}
        self._phones: Dict[str, str] = {}

    def add(self, email: str, secret: str,
            phone: Optional[str] = None) -> Account:
        """Register an account."""
        email = normalize_email(email)
        phone = phone.strip() if phone else None
        account = Account(email=email, encrypted=hash_secret(secret),
                          phone=phone)
        self._accounts[email] = account
        if phone:
            self._phones[phone] = email
        return account

    def has_email(self, email: str) -> bool:
        """True if there is an account for ``email``."""
        return normalize_email(email) in self._accounts

    def get(self, identifier: str) -> Optional[Account]:
        """The account for an email address or phone number, if any."""
        identifier = identifier.strip()
        email = self._phones.get(identifier, normalize_email(identifier))
        return self._accounts.get(email)

    def is_locked(self, account: Account) -> bool:
        """True while ``account`` is locked out."""
        return account.lock_until is not None \
            and account.lock_until > self._clock()

    def set_secret(self, email: str, secret: str) -> bool:
        """Replace the secret for ``email`` and lift any lock."""
        account = self._accounts.get(normalize_email(email))
        if account is None:
            return False
        self._accounts[account.email] = account._replace(
            encrypted=hash_secret(secret), login_attempts=0, lock_until=None
        )
        return True

    def _failed(self, account: Account) -> None:
        if account.lock_until is not None:
            # The previous lock has run out; start counting again.
            account = account._replace(login_attempts=0, lock_until=None)
        attempts = account.login_attempts + 1
        lock_until = None
        if attempts >= self.max_attempts:
            lock_until = self._clock() + self.lockout
            logger.info('Locking %s after %i failed attempts',
                        mask_address(account.email), attempts)
        self._accounts[account.email] = account._replace(
            login_attempts=attempts, lock_until=lock_until
        )

    def _verify(self, identifier: str, secret: str) -> Optional[Account]:
        account = self.get(identifier)
        if account is None:
            logger.debug('No such account')
            return None
        if self.is_locked(account):
            logger.debug('Account %s is locked', mask_address(account.email))
            return None
        if not check_secret(secret, account.encrypted):
            logger.debug('Incorrect secret for %s',
                         mask_address(account.email))
            self._failed(account)
            return None
        if account.login_attempts or account.lock_until is not None:
            account = account._replace(login_attempts=0, lock_until=None)
            self._accounts[account.email] = account
        return account

    async def authenticate(self, identifier: str,
                           secret: str) -> AuthenticationResult:
        """Check an identifier/secret pair."""
        return AuthenticationResult(
            ok=self._verify(identifier, secret) is not None
        )

    async def change_secret(self, identifier: str, current_secret: str,
                            new_secret: str) -> AuthenticationResult:
        """Replace the secret, provided the current one is correct."""
        account = self._verify(identifier, current_secret)
        if account is None:
            return AuthenticationResult(ok=False)
        self.set_secret(account.email, new_secret)
        logger.info('Changed secret for %s', mask_address(account.email))
        return AuthenticationResult(ok=True)

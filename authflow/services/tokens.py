"""
Recovery tokens.

A recovery token is a signed JWT carrying the account email, a unique token
id and an expiry ``RECOVERY_TOKEN_TTL_MINUTES`` in the future. The issuer
remembers the id of the one outstanding token per account, so that a token
can be redeemed only once, and a newer request supersedes an older one.

Requesting recovery for an unknown address looks the same to the caller as
requesting it for a known one, except that no token is issued.
"""

from typing import Any, Dict, Mapping, Optional, Set
from datetime import timedelta
import secrets

import dateutil.parser
import jwt

from .. import config, logging
from ..domain import RecoveryTokenResult, RedemptionResult
from .credentials import Clock, InMemoryCredentialStore, normalize_email, \
    now
from .mail import Outbox, mask_address

logger = logging.getLogger(__name__)


class InvalidRecoveryToken(ValueError):
    """A token was passed that is either expired or corrupted."""


class RecoveryTokenIssuer(object):
    """Mints and redeems recovery tokens for an in-memory credential store."""

    def __init__(self, credentials: InMemoryCredentialStore,
                 secret: str = config.RECOVERY_TOKEN_SECRET,
                 ttl_minutes: int = config.RECOVERY_TOKEN_TTL_MINUTES,
                 outbox: Optional[Outbox] = None,
                 reveal: bool = config.REVEAL_SECRETS_FOR_TESTING,
                 clock: Clock = now) -> None:
        self.credentials = credentials
        self.ttl_minutes = ttl_minutes
        self.ttl = timedelta(minutes=ttl_minutes)
        self.outbox = outbox if outbox is not None else Outbox()
        self.reveal = reveal
        self._secret = secret
        self._clock = clock
        self._outstanding: Dict[str, str] = {}
        self._redeemed: Set[str] = set()

    def new(self, email: str) -> str:
        """Generate a recovery token for ``email``."""
        claims = {
            'email': normalize_email(email),
            'jti': secrets.token_urlsafe(12),
            'expires': (self._clock() + self.ttl).isoformat()
        }
        token: str = jwt.encode(claims, self._secret, algorithm='HS256')
        self._outstanding[claims['email']] = claims['jti']
        return token

    def unpack(self, token: str) -> Mapping[str, Any]:
        """
        Decode a recovery token and check its expiry.

        Raises
        ------
        :class:`InvalidRecoveryToken`
            Raised if the token is malformed, forged or expired.

        """
        try:
            claims: Mapping[str, Any] = jwt.decode(token, self._secret,
                                                   algorithms=['HS256'])
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidRecoveryToken('Could not decode token') from e
        if not claims.get('email') or not claims.get('jti'):
            raise InvalidRecoveryToken('Malformed content')
        try:
            expires = dateutil.parser.parse(claims['expires'])
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            raise InvalidRecoveryToken('Malformed content') from e
        if expires <= self._clock():
            logger.debug('Recovery token expired: %s', claims['expires'])
            raise InvalidRecoveryToken('Expired token')
        return claims

    async def request_recovery_token(self, email: str) -> RecoveryTokenResult:
        """Issue a token for ``email`` and deliver it out of band."""
        if not self.credentials.has_email(email):
            logger.info('Recovery requested for unknown address %s',
                        mask_address(email))
            return RecoveryTokenResult(ok=True)

        token = self.new(email)
        self.outbox.send(
            to=normalize_email(email),
            subject='Password reset',
            text=f'Your password reset token is {token}\n\n'
                 f'It expires in {self.ttl_minutes} minutes. If you did not'
                 f' request a reset, please ignore this message.'
        )
        return RecoveryTokenResult(ok=True,
                                   token=token if self.reveal else None)

    async def redeem_recovery_token(self, token: str,
                                    new_secret: str) -> RedemptionResult:
        """Set ``new_secret`` if ``token`` is valid, unexpired and unused."""
        try:
            claims = self.unpack(token)
        except InvalidRecoveryToken as e:
            logger.debug('Rejected recovery token: %s', e)
            return RedemptionResult(ok=False)

        email, token_id = claims['email'], claims['jti']
        if token_id in self._redeemed:
            logger.debug('Recovery token already used')
            return RedemptionResult(ok=False)
        if self._outstanding.get(email) != token_id:
            logger.debug('Recovery token superseded or unknown')
            return RedemptionResult(ok=False)
        if not self.credentials.set_secret(email, new_secret):
            return RedemptionResult(ok=False)

        self._redeemed.add(token_id)
        del self._outstanding[email]
        logger.info('Recovery token redeemed for %s', mask_address(email))
        return RedemptionResult(ok=True)

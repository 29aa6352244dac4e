"""One-time codes for the privileged-access challenge."""

from typing import List, Optional
import asyncio
import hmac
import secrets

from .. import config, logging
from ..domain import CodeVerification
from .mail import Outbox, mask_address

logger = logging.getLogger(__name__)


class OneTimeCodeChannel(object):
    """
    Issues numeric one-time codes and delivers them to an :class:`.Outbox`.

    Parameters
    ----------
    destination : str
        Address that codes are delivered to.
    invalidate_previous : bool
        If True, issuing a code invalidates every code issued before it.
        Otherwise all issued codes stay valid until one of them is used.
    fixed_code : str or None
        If set, always issue this code. For demonstrations only.
    latency : float
        Seconds that verification takes.

    """

    def __init__(self, destination: str, outbox: Optional[Outbox] = None,
                 length: int = config.ONE_TIME_CODE_LENGTH,
                 latency: float = config.VERIFY_LATENCY,
                 invalidate_previous: bool = True,
                 fixed_code: Optional[str] = config.DEMO_ONE_TIME_CODE) -> None:
        self.destination = destination
        self.outbox = outbox if outbox is not None else Outbox()
        self.length = length
        self.latency = latency
        self.invalidate_previous = invalidate_previous
        self.fixed_code = fixed_code
        self._active: List[str] = []

    def _generate(self) -> str:
        if self.fixed_code:
            return self.fixed_code
        return f'{secrets.randbelow(10 ** self.length):0{self.length}d}'

    async def issue_one_time_code(self) -> Optional[str]:
        """Issue a new code and deliver it."""
        code = self._generate()
        if self.invalidate_previous:
            self._active = [code]
        else:
            self._active.append(code)
        self.outbox.send(
            to=self.destination,
            subject='Your verification code',
            text=f'Your one-time code is {code}'
        )
        logger.debug('Issued one-time code to %s (%i active)',
                     mask_address(self.destination), len(self._active))
        return code

    async def verify_one_time_code(self, code: str) -> CodeVerification:
        """Check ``code``. A matched code is used up."""
        await asyncio.sleep(self.latency)
        for active in self._active:
            if hmac.compare_digest(active.encode('utf-8'),
                                   code.encode('utf-8')):
                self._active.remove(active)
                return CodeVerification(matched=True)
        return CodeVerification(matched=False)

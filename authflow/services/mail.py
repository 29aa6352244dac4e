"""Out-of-band delivery of recovery tokens and one-time codes."""

from typing import List, NamedTuple, Optional

from .. import logging

logger = logging.getLogger(__name__)


class Message(NamedTuple):
    """A message delivered out of band."""

    to: str
    subject: str
    text: str


def mask_address(address: str) -> str:
    """Obscure an address for logging, e.g. ``j***@e***.org``."""
    try:
        local, domain = address.split('@', 1)
    except ValueError:
        return address[:1] + '***' if address else address
    local_mask = local[0] + '***' if len(local) > 1 else '*'
    dot = domain.rfind('.')
    if dot > 0:
        return f'{local_mask}@{domain[0]}***{domain[dot:]}'
    return f'{local_mask}@{domain[:1]}***'


class Outbox(object):
    """Records delivered messages instead of handing them to a mail server."""

    def __init__(self) -> None:
        self.messages: List[Message] = []

    def send_message(self, message: Message) -> None:
        """Deliver ``message``."""
        logger.info('Delivering "%s" to %s', message.subject,
                    mask_address(message.to))
        self.messages.append(message)

    def send(self, to: str, subject: str, text: str) -> None:
        """Compose and deliver a message."""
        self.send_message(Message(to=to, subject=subject, text=text))

    def latest(self, to: Optional[str] = None) -> Optional[Message]:
        """The most recent message, optionally only those sent to ``to``."""
        for message in reversed(self.messages):
            if to is None or message.to == to:
                return message
        return None

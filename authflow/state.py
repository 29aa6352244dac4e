"""
Observable state for flow controllers.

A controller owns its canonical state as an immutable snapshot. Every change
replaces the snapshot and is published on the controller's ``changed``
signal, so that a presentation layer can render without owning any business
logic. Presentation code never mutates the state; it calls the controller.

Collaborator calls are the only points at which a controller suspends. Each
controller carries a generation counter that is bumped on cancel and
teardown; a response that arrives for an older generation is discarded
rather than applied to the fresh state.
"""

from typing import Any, Awaitable, Callable, Mapping, TypeVar
from types import MappingProxyType

from blinker import Signal

from . import logging
from .exceptions import AuthError, ConnectivityError, Unavailable

logger = logging.getLogger(__name__)

T = TypeVar('T')

NO_ERRORS: Mapping[str, str] = MappingProxyType({})
"""Read-only empty error map, shared by state snapshots without errors."""


class Flow(object):
    """Base class for the flow controllers."""

    def __init__(self, initial: Any) -> None:
        self.changed = Signal('changed')
        self._state = initial
        self._generation = 0

    @property
    def state(self) -> Any:
        """The current state snapshot."""
        return self._state

    def subscribe(self, receiver: Callable[[Any], None]) -> Callable[[], None]:
        """
        Call ``receiver`` with the new state whenever it changes.

        Returns
        -------
        callable
            Call this to stop receiving updates.

        """
        def _receive(sender: 'Flow', state: Any) -> None:
            receiver(state)

        self.changed.connect(_receive, sender=self, weak=False)
        return lambda: self.changed.disconnect(_receive, sender=self)

    def _update(self, **changes: Any) -> None:
        self._state = self._state._replace(**changes)
        self.changed.send(self, state=self._state)

    def _replace_state(self, state: Any) -> None:
        self._state = state
        self.changed.send(self, state=self._state)

    def _invalidate(self) -> None:
        """Abandon any outstanding collaborator calls."""
        self._generation += 1

    def _stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug('Discarding late response for abandoned %s',
                          type(self).__name__)
            return True
        return False

    async def _collaborate(self, call: Awaitable[T], operation: str,
                           message: str) -> T:
        """
        Await a collaborator call, mapping faults to
        :class:`.ConnectivityError`.

        Parameters
        ----------
        call : awaitable
            The collaborator call.
        operation : str
            Name of the operation, for logging.
        message : str
            User-facing message for the :class:`.ConnectivityError`.

        """
        try:
            return await call
        except Unavailable as e:
            logger.info('%s failed, collaborator unavailable: %s',
                        operation, e)
            raise ConnectivityError(message) from e
        except AuthError:
            raise
        except Exception as e:
            logger.exception('Unexpected error during %s', operation)
            raise ConnectivityError(message) from e

"""
=============================================================================
READINESS MULTIPLEXER
=============================================================================

A Poller watches many descriptors at once and tells you which ones are
ready, so a single thread can wait on all of them without blocking on any
one in particular.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Poller                                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   add(fd, READABLE, on_ready)     register interest + callback       │
    │   modify(fd, WRITABLE)            change the interest set            │
    │   remove(fd)                      forget it (no-op if unknown)       │
    │                                                                      │
    │   poll(timeout)                   wait; queue ready descriptors      │
    │       timeout None / < 0  →  block until something is ready          │
    │       timeout 0           →  return immediately                      │
    │       timeout > 0         →  wait at most that many seconds          │
    │                                                                      │
    │   process_events()                call on_ready(fd, events) for      │
    │                                   everything poll() queued           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Built on the standard `selectors` module, which picks the best mechanism
the platform has (epoll, kqueue, poll or select).

The server's accept loop registers the listening transport here and polls
with a short timeout, so a shutdown request is noticed even when no client
ever connects again.

=============================================================================
"""

import enum
import logging
import selectors
from typing import Callable, Dict, List, Optional, Protocol, Tuple, Union


logger = logging.getLogger(__name__)


class Events(enum.IntFlag):
    """Readiness conditions a caller can be interested in."""
    READABLE = selectors.EVENT_READ
    WRITABLE = selectors.EVENT_WRITE


class HasFileno(Protocol):
    def fileno(self) -> int:
        ...


Callback = Callable[[int, Events], None]
Pollable = Union[int, HasFileno]


def _descriptor(target: Pollable) -> int:
    fd = target if isinstance(target, int) else target.fileno()
    if fd < 0:
        raise ValueError(f"Invalid descriptor: {fd}")
    return fd


class Poller:
    """
    Registry of descriptor → (interest set, callback) with batched waits.

    Usage:
        poller = Poller()
        poller.add(listener, Events.READABLE, lambda fd, ev: accept_one())
        while running:
            if poller.poll(timeout=0.5):
                poller.process_events()
    """

    def __init__(self):
        self._selector = selectors.DefaultSelector()
        self._callbacks: Dict[int, Callback] = {}
        self._pending: List[Tuple[int, Events]] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add(self, target: Pollable, events: Events, callback: Callback) -> None:
        """Register `target`. Re-adding replaces its interest set and callback."""
        fd = _descriptor(target)
        if fd in self._callbacks:
            self._selector.modify(fd, int(events))
        else:
            self._selector.register(fd, int(events))
        self._callbacks[fd] = callback
        logger.debug(f"Watching fd={fd} for {events!r}")

    def modify(self, target: Pollable, events: Events) -> None:
        """Change the interest set of an already registered descriptor."""
        fd = _descriptor(target)
        if fd not in self._callbacks:
            raise KeyError(f"Descriptor {fd} is not registered")
        self._selector.modify(fd, int(events))

    def remove(self, target: Pollable) -> None:
        """Unregister `target`. Unknown descriptors are ignored."""
        fd = target if isinstance(target, int) else target.fileno()
        if self._callbacks.pop(fd, None) is None:
            return
        self._selector.unregister(fd)
        self._pending = [(ready_fd, ev) for ready_fd, ev in self._pending if ready_fd != fd]

    # =========================================================================
    # WAITING AND DISPATCH
    # =========================================================================

    def poll(self, timeout: Optional[float] = None) -> int:
        """
        Wait for readiness and queue what became ready.

        Returns:
            Number of ready descriptors (0 on timeout, and always 0 when
            nothing is registered).
        """
        if not self._callbacks:
            return 0
        if timeout is not None and timeout < 0:
            timeout = None

        ready = self._selector.select(timeout)
        for key, mask in ready:
            self._pending.append((key.fd, Events(mask)))
        return len(ready)

    def process_events(self) -> int:
        """Run callbacks for everything queued by poll(). Returns how many ran."""
        pending, self._pending = self._pending, []
        dispatched = 0
        for fd, events in pending:
            callback = self._callbacks.get(fd)
            if callback is None:
                continue  # Removed by an earlier callback
            callback(fd, events)
            dispatched += 1
        return dispatched

    # =========================================================================
    # INTROSPECTION / CLEANUP
    # =========================================================================

    def __len__(self) -> int:
        return len(self._callbacks)

    def __contains__(self, target: Pollable) -> bool:
        fd = target if isinstance(target, int) else target.fileno()
        return fd in self._callbacks

    @property
    def empty(self) -> bool:
        return not self._callbacks

    def close(self) -> None:
        self._callbacks.clear()
        self._pending.clear()
        self._selector.close()

    def __enter__(self) -> "Poller":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

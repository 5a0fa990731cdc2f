"""In-process transport with multicast semantics.

A :class:`Domain` stands in for the network: every :class:`Transport` joined
to a given (group, port) on the same domain receives a copy of each datagram
sent there, the sender included, the same way a multicast socket with
loopback enabled would. Nothing leaves the process, which makes this the
transport of choice for tests and for trying out application code without
a multicast route.
"""

from __future__ import annotations

import itertools
import queue
import threading
from typing import Dict, Optional, Set, Tuple

from .base import Address, Transport as BaseTransport, TransportClosed, TransportError

_ports = itertools.count(40000)


class Domain:
    """A shared medium. Transports only hear each other if they are attached
    to the same domain and joined to the same group and port.
    """

    def __init__(self):
        self._members: Dict[Tuple[str, int], Set["Transport"]] = {}
        self._lock = threading.Lock()

    def attach(self, transport: "Transport", group: str, port: int) -> None:
        with self._lock:
            self._members.setdefault((group, port), set()).add(transport)

    def detach(self, transport: "Transport", group: str, port: int) -> None:
        with self._lock:
            members = self._members.get((group, port))
            if members is None:
                return
            members.discard(transport)
            if not members:
                del self._members[(group, port)]

    def members(self, group: str, port: int) -> Set["Transport"]:
        with self._lock:
            return set(self._members.get((group, port), ()))

    def deliver(self, group: str, port: int, datagram: bytes, source: Address) -> int:
        """Hand *datagram* to every member of (group, port); return how many."""

        members = self.members(group, port)
        for member in members:
            member._inbox.put((datagram, source))
        return len(members)


default_domain = Domain()


class Transport(BaseTransport):
    """Loopback transport attached to *domain*, or to the module-level
    ``default_domain`` if none is given.
    """

    def __init__(self, domain: Optional[Domain] = None):
        if domain is None:
            domain = default_domain

        self.domain = domain
        self.group: Optional[str] = None
        self.port: Optional[int] = None

        # A made-up source address so receivers can tell senders apart.
        self.address: Address = ('127.0.0.1', next(_ports))

        try:
            self._inbox = queue.SimpleQueue()
        except AttributeError:
            self._inbox = queue.Queue()

        self._closed = False

    @property
    def joined(self) -> bool:
        return self.group is not None

    def join(self, group: str, port: int) -> None:
        if self._closed:
            raise TransportClosed('transport is closed')
        if self.group is not None:
            raise TransportError("already joined to %s:%d" % (self.group, self.port))

        self.group = group
        self.port = int(port)
        self.domain.attach(self, self.group, self.port)

    def leave(self) -> None:
        if self.group is None:
            return

        self.domain.detach(self, self.group, self.port)
        self.group = None
        self.port = None

    def send(self, group: str, port: int, datagram: bytes) -> None:
        if self._closed:
            raise TransportClosed('transport is closed')

        self.domain.deliver(group, int(port), bytes(datagram), self.address)

    def receive(self, timeout: Optional[float] = None) -> Optional[Tuple[bytes, Optional[Address]]]:
        if self.group is None:
            raise TransportClosed('transport is not joined to a group')

        try:
            item = self._inbox.get(timeout=timeout)
        except queue.Empty:
            return None

        # None is the wake-up marker.
        return item

    def wake(self) -> None:
        self._inbox.put(None)

    def close(self) -> None:
        self.leave()
        self._closed = True

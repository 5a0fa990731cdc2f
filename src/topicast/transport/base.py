"""Transport interface.

This is the (small) contract an agent needs from whatever moves its
datagrams. It lives outside :mod:`topicast.protocol` so the framing stays
independent of sockets.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple


Address = Tuple[str, int]


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportClosed(TransportError):
    """The transport is not joined to a group, or has been closed."""


class Transport(ABC):
    """Minimal contract for a datagram transport shared by a multicast group."""

    @abstractmethod
    def join(self, group: str, port: int) -> None:
        """Become a member of *group* on *port*, ready to receive."""

    @abstractmethod
    def leave(self) -> None:
        """Drop group membership and release the receive side. Idempotent."""

    @abstractmethod
    def send(self, group: str, port: int, datagram: bytes) -> None:
        """Transmit one datagram to *group* on *port*."""

    @abstractmethod
    def receive(self, timeout: Optional[float] = None) -> Optional[Tuple[bytes, Optional[Address]]]:
        """Wait for the next datagram.

        Returns (datagram, sender address), or None if *timeout* seconds
        elapse or :meth:`wake` is called first.
        """

    @abstractmethod
    def wake(self) -> None:
        """Interrupt a :meth:`receive` blocked in another thread."""

    @abstractmethod
    def close(self) -> None:
        """Release all resources. Idempotent."""

    @property
    def joined(self) -> bool:
        """Whether the transport is currently a group member."""
        return False

"""IPv4 multicast UDP transport.

Two plain UDP sockets do the work: one for sending, created up front, and
one bound to the shared port and joined to the group, created by
:meth:`Transport.join`. The receive side is watched with a ZeroMQ poller
alongside an inproc PAIR socket; anything sent on that PAIR socket wakes a
blocked :meth:`Transport.receive`, which is how another thread asks the
receive loop to look at its shutdown flag.
"""

from __future__ import annotations

import atexit
import itertools
import logging
import socket
import struct
import threading
import weakref
from typing import Optional, Tuple

import zmq

from .. import config
from .base import Address, Transport as BaseTransport, TransportClosed, TransportError

logger = logging.getLogger(__name__)

# Largest possible UDP payload; a smaller buffer would silently truncate
# anything bigger.

maximum_size = 65535
zmq_context = zmq.Context()

# Every transport not yet closed; whatever is left at exit gets closed before
# the context is torn down, otherwise term() waits on its sockets forever.

_live = weakref.WeakSet()

_signal_ids = itertools.count()


class Transport(BaseTransport):
    """UDP multicast transport.

    *ttl*, *interface* and *loop* default to the values from
    :mod:`topicast.config`. Several transports on one host can join the
    same group and port at the same time; the receive socket is opened with
    address (and, where available, port) reuse enabled.
    """

    def __init__(self, ttl: Optional[int] = None, interface: Optional[str] = None, loop: Optional[bool] = None):

        if ttl is None:
            ttl = config.ttl()
        if interface is None:
            interface = config.interface()
        if loop is None:
            loop = config.loop()

        self.ttl = int(ttl)
        self.interface = interface
        self.loop = bool(loop)

        self.group: Optional[str] = None
        self.port: Optional[int] = None
        self._membership: Optional[bytes] = None
        self._receiver: Optional[socket.socket] = None

        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)

        try:
            sender.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl)
            sender.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, int(self.loop))

            if self.interface:
                sender.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(self.interface))
        except OSError as exc:
            sender.close()
            raise TransportError("cannot configure sender (ttl %d, interface %s): %s" % (self.ttl, self.interface, exc)) from exc

        self._sender: Optional[socket.socket] = sender

        internal = "inproc://multicast.Transport:signal:%d" % (next(_signal_ids))
        self._sig_rx = zmq_context.socket(zmq.PAIR)
        self._sig_rx.setsockopt(zmq.LINGER, 0)
        self._sig_rx.bind(internal)
        self._sig_tx = zmq_context.socket(zmq.PAIR)
        self._sig_tx.setsockopt(zmq.LINGER, 0)
        self._sig_tx.connect(internal)
        self._sig_lock = threading.Lock()

        self.poller = zmq.Poller()
        self.poller.register(self._sig_rx, zmq.POLLIN)

        _live.add(self)

    @property
    def joined(self) -> bool:
        return self._receiver is not None

    def join(self, group: str, port: int) -> None:
        if self._sender is None:
            raise TransportClosed('transport is closed')
        if self._receiver is not None:
            raise TransportError("already joined to %s:%d" % (self.group, self.port))

        port = int(port)
        interface = self.interface or '0.0.0.0'

        try:
            membership = struct.pack('4s4s', socket.inet_aton(group), socket.inet_aton(interface))
        except OSError as exc:
            raise TransportError("invalid group or interface address: %s, %s" % (group, interface)) from exc

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except (AttributeError, OSError):
                # Not every platform has SO_REUSEPORT; SO_REUSEADDR is
                # sufficient for multicast sockets on those that don't.
                pass

            sock.bind(('', port))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
        except OSError as exc:
            sock.close()
            raise TransportError("cannot join %s:%d: %s" % (group, port, exc)) from exc

        self.group = group
        self.port = port
        self._membership = membership
        self._receiver = sock
        self.poller.register(sock, zmq.POLLIN)

        logger.debug("joined %s:%d", group, port)

    def leave(self) -> None:
        sock = self._receiver

        if sock is None:
            return

        self._receiver = None
        self.poller.unregister(sock)

        try:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._membership)
        except OSError:
            # The membership goes away with the socket regardless.
            pass

        sock.close()
        self._membership = None

        logger.debug("left %s:%d", self.group, self.port)

    def send(self, group: str, port: int, datagram: bytes) -> None:
        sender = self._sender

        if sender is None:
            raise TransportClosed('transport is closed')

        try:
            sender.sendto(datagram, (group, int(port)))
        except OSError as exc:
            raise TransportError("send to %s:%d failed: %s" % (group, int(port), exc)) from exc

    def receive(self, timeout: Optional[float] = None) -> Optional[Tuple[bytes, Optional[Address]]]:
        sock = self._receiver

        if sock is None:
            raise TransportClosed('transport is not joined to a group')

        if timeout is None:
            milliseconds = None
        else:
            milliseconds = max(0, int(timeout * 1000))

        try:
            sockets = self.poller.poll(milliseconds)
        except zmq.ZMQError as exc:
            raise TransportError("poll failed: %s" % (exc,)) from exc

        readable = False

        for active, _flag in sockets:
            if active is self._sig_rx:
                self._drain()
                return None
            if active is sock:
                readable = True

        if readable:
            try:
                datagram, address = sock.recvfrom(maximum_size)
            except OSError as exc:
                raise TransportError("receive failed: %s" % (exc,)) from exc

            return datagram, address

        return None

    def _drain(self) -> None:
        while True:
            try:
                self._sig_rx.recv(flags=zmq.NOBLOCK)
            except zmq.Again:
                break

    def wake(self) -> None:
        with self._sig_lock:
            if self._sig_tx.closed:
                return
            try:
                self._sig_tx.send(b'', flags=zmq.NOBLOCK)
            except zmq.Again:
                # A wake-up is already queued and not yet seen.
                pass

    def close(self) -> None:
        self.leave()

        sender = self._sender
        self._sender = None

        if sender is not None:
            sender.close()

        with self._sig_lock:
            if not self._sig_tx.closed:
                self._sig_tx.close()
            if not self._sig_rx.closed:
                self._sig_rx.close()

        _live.discard(self)


def _cleanup() -> None:
    for transport in list(_live):
        try:
            transport.close()
        except (OSError, zmq.ZMQError):
            logger.debug("error closing %r at exit", transport, exc_info=True)

    zmq_context.destroy(linger=0)


atexit.register(_cleanup)

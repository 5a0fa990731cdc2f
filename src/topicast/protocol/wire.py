""" Framing of topicast datagrams.

    Layout::

        [topic identifier, 32 bytes][payload...]

    There is no length prefix, checksum, or version byte; the fixed width of
    the identifier is the only framing. A datagram carries exactly one
    message.
"""

from __future__ import annotations

from typing import Tuple

from .. import topic


header_width = topic.width


class RuntError(ValueError):
    """ A datagram too short to contain a header and a payload. """


def encode(identifier: bytes, payload: bytes) -> bytes:
    """ Return the datagram for *payload* addressed to the topic
        *identifier*. No upper bound is enforced here; a payload too large
        for a single datagram is for the transport to reject.
    """

    # memoryview() rejects integers, which bytes() would quietly turn into
    # a run of zero bytes.

    identifier = bytes(memoryview(identifier))

    if len(identifier) != header_width:
        raise ValueError("topic identifier must be %d bytes, got %d" % (header_width, len(identifier)))

    return identifier + bytes(memoryview(payload))


def decode(datagram: bytes, allow_empty: bool = False) -> Tuple[bytes, bytes]:
    """ Split *datagram* into its (identifier, payload) components.

        A datagram no longer than the header is a runt and raises
        :class:`RuntError`. If *allow_empty* is True a datagram of exactly
        the header width is accepted as a message with an empty payload;
        anything shorter is still a runt.
    """

    datagram = bytes(memoryview(datagram))
    length = len(datagram)

    if length < header_width or (length == header_width and not allow_empty):
        raise RuntError("runt datagram: %d bytes, header is %d" % (length, header_width))

    identifier = datagram[:header_width]
    payload = datagram[header_width:]

    return identifier, payload


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

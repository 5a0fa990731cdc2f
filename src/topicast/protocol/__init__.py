""" topicast protocol layer: the datagram framing in :mod:`wire`, and the
    :class:`message.Message` objects handed to application code.

    The protocol layer does not depend on any transport implementation. It
    turns a topic identifier and a payload into a datagram, and a datagram
    back into its parts; moving the datagram is the transport's job.
"""

from . import message
from . import wire

from .message import Message, Unresolved
from .wire import RuntError, decode, encode, header_width


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" A class representation of a received topicast message, as handed to the
    delivery callback of an :class:`topicast.Agent`.
"""

import time as timemodule

from .. import topic as topicmodule


class Message:
    """ A decoded datagram whose identifier matched a registered topic.

        The fields mirror what arrived on the wire: the *topic* name the
        identifier resolved to, the raw *identifier*, and the *payload*
        bytes. The *address* is the (host, port) of the sender, if the
        transport knows it.

        :ivar length: The size of the payload in bytes; ``len(message)`` is
                      the same value.
        :ivar resolved: True if *topic* is a registered topic name.
        :ivar timestamp: A UNIX epoch timestamp for the time of receipt.
    """

    resolved = True

    def __init__(self, topic, identifier, payload, address=None):

        self.topic = topic
        self.identifier = bytes(identifier)
        self.payload = bytes(payload)
        self.address = address
        self.timestamp = timemodule.time()


    def __len__(self):
        return len(self.payload)


    def __repr__(self):
        return "%s(%r, %r)" % (self.__class__.__name__, self.topic, self.payload)


    @property
    def length(self):
        return len(self.payload)


    @property
    def hex(self):
        """ The identifier in its uppercase hexadecimal form. """
        return topicmodule.hexify(self.identifier)


    def text(self, encoding='utf-8', errors='replace'):
        """ Return the payload decoded as text. Payloads are opaque bytes on
            the wire; this is a convenience for the common case of a text
            payload, undecodable bytes are replaced rather than raising.
        """

        return self.payload.decode(encoding, errors)


# end of class Message



class Unresolved(Message):
    """ A decoded datagram for a topic this agent never registered. These are
        only delivered if the agent was asked to deliver them; the *topic*
        attribute holds the hexadecimal identifier, there being no name to
        report.
    """

    resolved = False

    def __init__(self, identifier, payload, address=None):
        identifier = bytes(identifier)
        Message.__init__(self, topicmodule.hexify(identifier), identifier, payload, address)


# end of class Unresolved


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" Topic names and their on-the-wire identifiers. A topic identifier is the
    SHA-256 digest of the UTF-8 encoded topic name; every agent computes the
    same identifier for the same name, regardless of when or whether it
    registered interest in that topic.

    The :class:`Registry` is the local record of which topics an agent is
    interested in. It maps names to identifiers and back, and is the only
    state shared between the receive loop and the sending side of an
    :class:`topicast.Agent`.
"""

import binascii
import hashlib
import logging
import threading

logger = logging.getLogger(__name__)

# The identifier width is fixed by the hash. There is no length prefix on the
# wire, the receiver relies on this width to find the start of the payload.

width = hashlib.sha256().digest_size


def hash(name):
    """ Return the 32-byte identifier for the topic *name*. The digest is
        computed over the exact UTF-8 encoding of the name: no case folding,
        no whitespace stripping, no Unicode normalization. Two names that
        render identically but are encoded differently are different topics.
    """

    if isinstance(name, str):
        pass
    else:
        raise TypeError('topic name must be a str, not ' + type(name).__name__)

    encoded = name.encode('utf-8')
    return hashlib.sha256(encoded).digest()



def hexify(identifier):
    """ Return the uppercase hexadecimal representation of *identifier*, with
        no separators. This is the key used for reverse lookups; a fixed case
        guarantees identical digests always produce identical keys.
    """

    identifier = bytes(memoryview(identifier))
    return binascii.hexlify(identifier).decode().upper()



class Registry:
    """ Bidirectional mapping between topic names and topic identifiers. A
        topic present in the registry is one the local agent wants to
        receive; absence of a topic means any messages for it are not
        interesting.

        All methods are safe to call from multiple threads. A :func:`resolve`
        racing with an :func:`unregister` of the same topic may observe
        either outcome, but the two directions of the mapping are always
        updated together.
    """

    def __init__(self):

        self._by_name = dict()
        self._by_hex = dict()
        self._lock = threading.Lock()


    def __contains__(self, thing):
        """ True if *thing* is a registered topic name or the identifier of
            a registered topic.
        """

        if isinstance(thing, str):
            with self._lock:
                return thing in self._by_name

        try:
            key = hexify(thing)
        except TypeError:
            return False

        with self._lock:
            return key in self._by_hex


    def __len__(self):
        with self._lock:
            return len(self._by_name)


    def __repr__(self):
        return 'topic.Registry: ' + repr(self.names())


    def clear(self):
        """ Forget all registered topics.
        """

        with self._lock:
            self._by_name.clear()
            self._by_hex.clear()


    def identifier(self, name):
        """ Return the identifier for the topic *name*. Registered topics use
            the cached value; any other topic is hashed on the spot, since a
            sender does not need to be interested in a topic to send to it.
        """

        with self._lock:
            try:
                key = self._by_name[name]
            except KeyError:
                key = None

        if key is None:
            return hash(name)
        else:
            return bytes.fromhex(key)


    def names(self):
        """ Return a sorted list of the registered topic names.
        """

        with self._lock:
            names = list(self._by_name.keys())

        names.sort()
        return names


    def register(self, name):
        """ Register interest in the topic *name*, and return its identifier.
            Registering a topic more than once is harmless.
        """

        identifier = hash(name)
        key = hexify(identifier)

        with self._lock:
            self._by_name[name] = key
            self._by_hex[key] = name

        logger.debug('REG:%s:%s', key, name)
        return identifier


    def resolve(self, identifier):
        """ Return the registered topic name for *identifier*. A KeyError is
            raised if the identifier does not belong to a registered topic;
            for a receiver that is the ordinary signal to discard a message,
            not a failure.
        """

        key = hexify(identifier)

        with self._lock:
            try:
                return self._by_hex[key]
            except KeyError:
                pass

        raise KeyError('unknown topic identifier: ' + key)


    def unregister(self, name):
        """ Remove interest in the topic *name*. Removing a topic that was
            never registered is a no-op.
        """

        key = hexify(hash(name))

        with self._lock:
            self._by_name.pop(name, None)
            self._by_hex.pop(key, None)

        logger.debug('UNREG:%s:%s', key, name)


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

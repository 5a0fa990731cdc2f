""" Default settings for topicast agents. Each setting can be overridden with
    an environment variable; the environment is consulted every time one of
    these functions is called, not once at import time.

    The group address and port are the out-of-band agreement between agents:
    two agents only hear each other if they use the same pair.
"""

import os
import socket

default_group = '224.0.0.3'
default_port = 8888
default_ttl = 1
default_timeout = 1.0

policies = ('drop', 'deliver')


def _get(name):
    try:
        value = os.environ[name]
    except KeyError:
        return None

    value = value.strip()
    if value == '':
        return None

    return value



def _number(name, value, convert):
    try:
        return convert(value)
    except ValueError:
        raise ValueError("%s must be a number, not %r" % (name, value))



def group():
    """ The multicast group address, from ``TOPICAST_GROUP``.
    """

    value = _get('TOPICAST_GROUP')

    if value is None:
        return default_group

    return value



def port():
    """ The UDP port shared by all agents, from ``TOPICAST_PORT``.
    """

    value = _get('TOPICAST_PORT')

    if value is None:
        return default_port

    value = _number('TOPICAST_PORT', value, int)

    if value < 1 or value > 65535:
        raise ValueError('TOPICAST_PORT out of range: ' + str(value))

    return value



def ttl():
    """ The multicast time-to-live for outbound datagrams, from
        ``TOPICAST_TTL``. The default of 1 keeps traffic on the local
        network segment.
    """

    value = _get('TOPICAST_TTL')

    if value is None:
        return default_ttl

    value = _number('TOPICAST_TTL', value, int)

    if value < 0 or value > 255:
        raise ValueError('TOPICAST_TTL out of range: ' + str(value))

    return value



def interface():
    """ The address of the local interface used to join the group and to
        send, from ``TOPICAST_INTERFACE``. None means let the operating
        system choose.
    """

    value = _get('TOPICAST_INTERFACE')

    if value is None:
        return None

    try:
        socket.inet_aton(value)
    except OSError:
        raise ValueError('TOPICAST_INTERFACE must be an IPv4 address, not ' + repr(value))

    return value



def loop():
    """ Whether outbound datagrams are looped back to agents on this host,
        from ``TOPICAST_LOOP``. Enabled by default so that several agents on
        one host can talk to each other.
    """

    value = _get('TOPICAST_LOOP')

    if value is None:
        return True

    value = value.lower()

    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False

    raise ValueError('TOPICAST_LOOP must be a boolean, not ' + repr(value))



def unresolved():
    """ What an agent does with messages for topics it never registered,
        from ``TOPICAST_UNRESOLVED``: 'drop' them (the default), or
        'deliver' them as :class:`topicast.protocol.Unresolved` messages.
    """

    value = _get('TOPICAST_UNRESOLVED')

    if value is None:
        return policies[0]

    value = value.lower()

    if value in policies:
        return value

    raise ValueError("TOPICAST_UNRESOLVED must be one of %s, not %r" % (policies, value))



def timeout():
    """ How long, in seconds, the receive loop waits for a datagram before
        checking whether it has been asked to stop, from
        ``TOPICAST_TIMEOUT``. A stop request wakes the loop immediately
        regardless; this is the upper bound if the wake-up is lost.
    """

    value = _get('TOPICAST_TIMEOUT')

    if value is None:
        return default_timeout

    value = _number('TOPICAST_TIMEOUT', value, float)

    if value <= 0:
        raise ValueError('TOPICAST_TIMEOUT must be positive: ' + str(value))

    return value


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" A small driver showing typical use of a topicast :class:`Agent`: list the
    local network interfaces, start an agent, register a topic, and send a
    handful of numbered messages to it. Run two copies with different
    identifiers to watch them hear each other.
"""

import argparse
import logging
import socket
import sys
import time

from . import config
from .agent import Agent
from .transport import TransportError


def interfaces():
    """ Return a list of (index, name) pairs for the local network interfaces.
        Platforms without interface enumeration return an empty list.
    """

    try:
        return socket.if_nameindex()
    except (AttributeError, OSError):
        return list()



def arguments(argv=None):

    parser = argparse.ArgumentParser(
        description='Send and receive a few messages on a topicast group'
    )
    parser.add_argument(
        'id',
        nargs='?',
        default='1',
        help='Identifier prefixed to each message sent (default: 1)'
    )
    parser.add_argument(
        '--group',
        default=None,
        help='Multicast group address (default: %s)' % (config.default_group)
    )
    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Multicast port (default: %d)' % (config.default_port)
    )
    parser.add_argument(
        '--topic',
        default='/topic/a',
        help='Topic to register and send to (default: /topic/a)'
    )
    parser.add_argument(
        '--count',
        type=int,
        default=4,
        help='Number of messages to send (default: 4)'
    )
    parser.add_argument(
        '--interval',
        type=float,
        default=1.0,
        help='Seconds between messages (default: 1.0)'
    )
    parser.add_argument(
        '--interfaces',
        action='store_true',
        help='List the local network interfaces and exit'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log every registration, transmission and reception'
    )

    return parser.parse_args(argv)



def show(message):
    print("RXM : %s : %s" % (message.topic, message.text()))
    sys.stdout.flush()



def main(argv=None, transport=None):
    """ Entry point for the ``topicast-demo`` command; returns the exit
        status. A *transport* other than the default multicast one can be
        supplied when calling this directly.
    """

    args = arguments(argv)

    if args.verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    for index, name in interfaces():
        print("IFC : %d : %s" % (index, name))

    if args.interfaces:
        return 0

    try:
        agent = Agent(args.group, args.port, callback=show, transport=transport)
    except (TransportError, ValueError) as e:
        print('cannot create agent: ' + str(e), file=sys.stderr)
        return 1

    agent.start()
    agent.register(args.topic)

    try:
        for number in range(1, args.count + 1):
            data = "%s.%d" % (args.id, number)
            agent.send(args.topic, data)
            print("TXM : %s : %s" % (args.topic, data))
            time.sleep(args.interval)

    except TransportError as e:
        print('send failed: ' + str(e), file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        pass

    finally:
        agent.stop(timeout=2)

    if agent.error is not None:
        print('receive failed: ' + str(agent.error), file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" Python implementation of topicast, a topic-based publish/subscribe overlay
    on IP multicast. Agents register interest in named topics, send opaque
    payloads to topics, and receive whatever other agents on the same group
    send to the topics they registered. There is no broker: every datagram
    goes to the whole group, and each agent picks out what it wants.
"""

# Submodules used by multiple other components.

from . import config
from . import topic
from . import protocol
from . import transport

# Primary public-facing interfaces.

from . import agent
from .agent import Agent
from .protocol import Message, RuntError, Unresolved
from .transport import TransportClosed, TransportError

__version__ = '1.0.0'

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

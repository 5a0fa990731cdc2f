"""Transport layer implementations."""

from .base import (
    Transport,
    TransportClosed,
    TransportError,
)

from . import loopback
from . import multicast

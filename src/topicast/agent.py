""" The :class:`Agent` is the application-facing side of topicast: register
    interest in topics, send payloads to topics, and have a background loop
    hand every interesting message that arrives to a callback.
"""

import atexit
import logging
import threading
import weakref

from . import config
from . import protocol
from . import topic as topicmodule
from .transport import TransportError
from .transport import multicast

logger = logging.getLogger(__name__)

CREATED = 'created'
RUNNING = 'running'
STOPPED = 'stopped'

_running = weakref.WeakSet()


class Agent:
    """ Send and receive topic-addressed messages over a multicast group.
        Any number of agents, in any number of processes, can share a group;
        each one receives everything sent to the group and delivers only the
        messages for topics it has registered.

        The *group* and *port* identify the multicast group and are fixed for
        the life of the agent; they default to the values from
        :mod:`topicast.config`. The *callback* is invoked with a
        :class:`topicast.protocol.Message` for every delivered message; a
        subclass can instead override :func:`recv`. The *transport* moves the
        datagrams, a new :class:`topicast.transport.multicast.Transport` is
        created if none is provided.

        Messages for topics that were never registered are dropped, unless
        *unresolved* is 'deliver', in which case they are passed to the
        callback as :class:`topicast.protocol.Unresolved` instances. A
        datagram carrying nothing beyond the topic identifier is a runt and
        is dropped, unless *allow_empty* is True, in which case it is
        delivered as a message with an empty payload.

        The agent starts out 'created'. :func:`run` (or :func:`start`, to
        use a background thread) makes it 'running'; :func:`stop`, or a
        fatal transport error, makes it 'stopped'. A stopped agent cannot
        be restarted.

        :ivar error: The exception that ended the receive loop, if any.
        :ivar registry: The :class:`topicast.topic.Registry` of topics this
                        agent is interested in.
    """

    def __init__(self, group=None, port=None, callback=None, transport=None, unresolved=None, allow_empty=False, timeout=None):

        if group is None:
            group = config.group()
        if port is None:
            port = config.port()
        if timeout is None:
            timeout = config.timeout()

        if unresolved is None:
            unresolved = config.unresolved()
        elif unresolved not in config.policies:
            raise ValueError("unresolved must be one of %s, not %r" % (config.policies, unresolved))

        if callback is None or callable(callback):
            pass
        else:
            raise TypeError('callback must be callable')

        group = str(group)
        port = int(port)
        timeout = float(timeout)

        if transport is None:
            transport = multicast.Transport()

        self._group = group
        self._port = port

        self.allow_empty = bool(allow_empty)
        self.callback = callback
        self.error = None
        self.registry = topicmodule.Registry()
        self.shutdown = False
        self.thread = None
        self.timeout = timeout
        self.transport = transport
        self.unresolved = unresolved

        self._lock = threading.Lock()
        self._loop_thread = None
        self._ran = False
        self._status = CREATED
        self._listening = threading.Event()
        self._stopped = threading.Event()


    def __repr__(self):
        return "Agent(%s:%d, %s)" % (self._group, self._port, self._status)


    @property
    def group(self):
        return self._group


    @property
    def port(self):
        return self._port


    @property
    def running(self):
        return self._status == RUNNING


    @property
    def status(self):
        """ One of 'created', 'running', or 'stopped'. """
        return self._status


    def register(self, topic):
        """ Register interest in *topic*. Messages for a topic are only
            delivered once it is registered. This is purely local: other
            agents are not told, and nothing is sent.
        """

        return self.registry.register(topic)


    def unregister(self, topic):
        """ Discontinue delivery of messages for *topic*. Unregistering a
            topic that was never registered is a no-op.
        """

        self.registry.unregister(topic)


    def send(self, topic, data):
        """ Send *data* to every agent interested in *topic*. The *data* can
            be bytes, or a string, which is encoded as UTF-8. There is no
            need to register a topic in order to send to it.

            Exactly one datagram goes out per call. There is no retry; if the
            transport fails the :class:`topicast.transport.TransportError`
            is raised here, to the caller.
        """

        try:
            data = data.encode('utf-8')
        except AttributeError:
            pass

        identifier = self.registry.identifier(topic)
        datagram = protocol.wire.encode(identifier, data)

        self.transport.send(self._group, self._port, datagram)
        logger.debug('TXM : %s : %r', topic, data)


    def recv(self, message):
        """ Called once for every message delivered by the receive loop. The
            default implementation invokes the *callback* provided at
            construction time, if any. Subclasses can override this method
            instead of providing a callback.

            Whatever happens here holds up the receive loop; there is a single
            thread handling all arriving messages, so this should be kept as
            lightweight as possible.
        """

        callback = self.callback

        if callback is None:
            return

        callback(message)


    def run(self):
        """ Join the multicast group and process arriving datagrams until
            :func:`stop` is called. This method blocks; use :func:`start` to
            run it in a background thread.

            If the transport fails the agent is stopped, the exception is
            stored as the *error* attribute, and re-raised from here.
        """

        with self._lock:
            if self._status == STOPPED and self._ran == False:
                # Stopped before the loop ever got going; nothing to do.
                self._listening.set()
                return

            if self._status != CREATED:
                raise RuntimeError('agent is ' + self._status + ', it can only be run once')

            self._ran = True
            self._status = RUNNING
            self._loop_thread = threading.current_thread()
            _running.add(self)

        try:
            self.transport.join(self._group, self._port)
            logger.debug("listening on %s:%d", self._group, self._port)
            self._listening.set()

            while self.shutdown == False:
                received = self.transport.receive(self.timeout)

                if received is None:
                    continue

                datagram, address = received
                self._incoming(datagram, address)

        except TransportError as e:
            if self.shutdown:
                # Torn down underneath a loop that was already told to exit.
                logger.debug("receive loop on %s:%d ended during shutdown: %s", self._group, self._port, e)
                return

            self.error = e
            logger.error("receive loop on %s:%d failed: %s", self._group, self._port, e)
            raise

        finally:
            try:
                self.transport.close()
            finally:
                with self._lock:
                    self._status = STOPPED
                _running.discard(self)
                self._stopped.set()
                self._listening.set()


    def start(self, timeout=5):
        """ Invoke :func:`run` in a dedicated background thread, and return
            that thread. This waits up to *timeout* seconds for the loop to
            join the multicast group, so that anything sent after this
            returns can be heard by this agent.
        """

        if self.thread is not None:
            raise RuntimeError("agent already started in thread " + self.thread.name)

        name = "topicast.Agent:%s:%d" % (self._group, self._port)
        thread = threading.Thread(target=self.run, name=name)
        thread.daemon = True

        self.thread = thread
        thread.start()
        self._listening.wait(timeout)
        return thread


    def stop(self, timeout=None):
        """ Ask the receive loop to exit. This is safe to call from any
            thread, and more than once. Unless it is called from the receive
            loop itself (for example, from inside a callback), this waits up
            to *timeout* seconds for the loop to leave the multicast group
            and release the transport; the return value is True if the agent
            is fully stopped.
        """

        self.shutdown = True

        with self._lock:
            status = self._status
            if status == CREATED:
                self._status = STOPPED

        if status == CREATED:
            self.transport.close()
            self._stopped.set()
            return True

        if status == STOPPED:
            return True

        self.transport.wake()

        if threading.current_thread() is self._loop_thread:
            return False

        return self._stopped.wait(timeout)


    def _incoming(self, datagram, address=None):
        """ Decode and resolve one datagram, and deliver it if appropriate.
            Runts and uninteresting topics are dropped here; nothing in this
            method is allowed to break the receive loop.
        """

        try:
            identifier, payload = protocol.wire.decode(datagram, self.allow_empty)
        except protocol.RuntError:
            logger.debug('dropped runt datagram: %d bytes from %s', len(datagram), address)
            return

        try:
            topic = self.registry.resolve(identifier)
        except KeyError:
            if self.unresolved == 'deliver':
                message = protocol.Unresolved(identifier, payload, address)
            else:
                logger.debug('dropped message for unregistered topic %s', topicmodule.hexify(identifier))
                return
        else:
            message = protocol.Message(topic, identifier, payload, address)

        logger.debug('RXM : %s : %r', message.topic, message.payload)

        try:
            self.recv(message)
        except Exception:
            logger.exception('error delivering %r', message)


# end of class Agent


def _cleanup():
    """ Stop any receive loop still going at interpreter exit, so that each
        one releases its transport before the transports themselves are torn
        down.
    """

    for agent in list(_running):
        agent.stop(timeout=agent.timeout + 1)


atexit.register(_cleanup)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

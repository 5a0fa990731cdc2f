import threading
import time

import pytest
import topicast

from topicast.transport import TransportError, loopback, multicast


class FailingTransport(loopback.Transport):
    """ A loopback transport that can be told to fail on send or receive.
    """

    fail_send = False
    fail_receive = False

    def send(self, group, port, datagram):
        if self.fail_send:
            raise TransportError('simulated send failure')
        return loopback.Transport.send(self, group, port, datagram)

    def receive(self, timeout=None):
        if self.fail_receive:
            raise TransportError('simulated receive failure')
        return loopback.Transport.receive(self, timeout)


def test_scenario_room_temp(make_agent, collector):

    a = make_agent(callback=collector)
    b = make_agent()

    a.register('room/temp')
    a.start()

    b.send('room/temp', '21.5')

    assert collector.wait(1)
    message = collector.messages[0]

    assert message.resolved == True
    assert message.topic == 'room/temp'
    assert message.payload == b'21.5'
    assert message.length == 4
    assert message.identifier == topicast.topic.hash('room/temp')
    assert message.address == b.transport.address


def test_sender_hears_itself(make_agent, collector):

    agent = make_agent(callback=collector)
    agent.register('/topic/a')
    agent.start()

    agent.send('/topic/a', b'1.1')

    assert collector.wait(1)
    assert collector.messages[0].payload == b'1.1'


def test_runt_discarded(make_agent, collector):

    agent = make_agent(callback=collector)
    agent.register('room/temp')
    agent.start()

    raw = loopback.Transport(agent.transport.domain)
    raw.send(agent.group, agent.port, b'\x01' * 20)
    raw.send(agent.group, agent.port, topicast.topic.hash('room/temp'))

    # A valid message sent afterwards proves the loop survived the runts.

    agent.send('room/temp', 'after')

    assert collector.wait(1)
    time.sleep(0.1)

    assert len(collector.messages) == 1
    assert collector.messages[0].payload == b'after'
    assert agent.running == True


def test_empty_payload_allowed(make_agent, collector):

    agent = make_agent(callback=collector, allow_empty=True)
    agent.register('x')
    agent.start()

    agent.send('x', b'')

    assert collector.wait(1)
    message = collector.messages[0]

    assert message.topic == 'x'
    assert message.identifier == topicast.topic.hash('x')
    assert message.payload == b''
    assert message.length == 0


def test_unregistered_dropped(make_agent, collector):

    agent = make_agent(callback=collector)
    agent.register('wanted')
    agent.start()

    agent.send('unwanted', 'ignored')
    agent.send('wanted', 'kept')

    assert collector.wait(1)
    time.sleep(0.1)

    assert [m.topic for m in collector.messages] == ['wanted']


def test_unregistered_delivered(make_agent, collector):

    agent = make_agent(callback=collector, unresolved='deliver')
    agent.start()

    agent.send('unwanted', 'visible')

    assert collector.wait(1)
    message = collector.messages[0]

    assert isinstance(message, topicast.Unresolved)
    assert message.resolved == False
    assert message.topic == topicast.topic.hexify(topicast.topic.hash('unwanted'))
    assert message.payload == b'visible'


def test_unregister_stops_delivery(make_agent, collector):

    agent = make_agent(callback=collector)
    agent.register('a')
    agent.start()

    agent.send('a', 'one')
    assert collector.wait(1)

    agent.unregister('a')
    agent.register('b')
    agent.send('a', 'two')
    agent.send('b', 'three')

    assert collector.wait(2)
    time.sleep(0.1)

    assert [m.payload for m in collector.messages] == [b'one', b'three']


def test_bad_unresolved_policy(make_agent):

    with pytest.raises(ValueError):
        make_agent(unresolved='maybe')


def test_bad_callback(make_agent):

    with pytest.raises(TypeError):
        make_agent(callback='not callable')


def test_bad_arguments_open_nothing(monkeypatch):

    def refuse(*args, **kwargs):
        raise AssertionError('a transport was created for a bad argument')

    monkeypatch.setattr(multicast, 'Transport', refuse)

    with pytest.raises(ValueError):
        topicast.Agent('239.1.2.3', 'x')

    with pytest.raises(ValueError):
        topicast.Agent('239.1.2.3', 9999, timeout='abc')

    with pytest.raises(ValueError):
        topicast.Agent('239.1.2.3', 9999, unresolved='maybe')


def test_start_twice(make_agent):

    agent = make_agent()
    thread = agent.start()

    with pytest.raises(RuntimeError):
        agent.start()

    assert agent.thread is thread
    assert agent.running == True


def test_lifecycle(make_agent):

    agent = make_agent()
    assert agent.status == topicast.agent.CREATED
    assert agent.running == False

    thread = agent.start()
    assert agent.status == topicast.agent.RUNNING
    assert agent.running == True
    assert agent.transport.joined == True

    assert agent.stop(timeout=2) == True
    thread.join(2)

    assert thread.is_alive() == False
    assert agent.status == topicast.agent.STOPPED
    assert agent.transport.joined == False
    assert agent.error is None

    # Stopping is idempotent, and stopped is terminal.

    assert agent.stop() == True

    with pytest.raises(RuntimeError):
        agent.run()


def test_stop_is_prompt(make_agent):

    # The poll timeout is far longer than the test is willing to wait; only
    # the wake-up can get the loop out in time.

    agent = make_agent(timeout=30)
    thread = agent.start()

    begin = time.time()
    assert agent.stop(timeout=5) == True
    elapsed = time.time() - begin

    thread.join(1)
    assert thread.is_alive() == False
    assert elapsed < 1


def test_stop_from_another_thread(make_agent):

    agent = make_agent(timeout=30)
    finished = threading.Event()

    def blocking():
        agent.run()
        finished.set()

    thread = threading.Thread(target=blocking)
    thread.daemon = True
    thread.start()

    while agent.status == topicast.agent.CREATED:
        time.sleep(0.01)

    assert agent.stop(timeout=5) == True
    assert finished.wait(2) == True


def test_stop_before_start(make_agent):

    agent = make_agent()
    assert agent.stop() == True
    assert agent.status == topicast.agent.STOPPED

    # The background thread notices it was stopped before it ran.

    thread = agent.start(timeout=2)
    thread.join(2)
    assert thread.is_alive() == False
    assert agent.error is None


def test_stop_from_callback(make_agent):

    stopped = list()

    def callback(message):
        stopped.append(agent.stop())

    agent = make_agent(callback=callback)
    agent.register('halt')
    thread = agent.start()

    agent.send('halt', 'now')

    thread.join(2)
    assert thread.is_alive() == False
    assert stopped == [False]
    assert agent.status == topicast.agent.STOPPED


def test_send_failure_raised(domain, make_agent):

    transport = FailingTransport(domain)
    agent = make_agent(transport=transport)

    transport.fail_send = True

    with pytest.raises(TransportError):
        agent.send('room/temp', '21.5')


def test_send_after_stop(make_agent):

    agent = make_agent()
    agent.start()
    agent.stop(timeout=2)

    with pytest.raises(topicast.TransportClosed):
        agent.send('room/temp', '21.5')


def test_receive_failure_stops(domain, make_agent):

    transport = FailingTransport(domain)
    agent = make_agent(transport=transport)
    transport.fail_receive = True

    with pytest.raises(TransportError):
        agent.run()

    assert agent.status == topicast.agent.STOPPED
    assert isinstance(agent.error, TransportError)
    assert transport.joined == False


def test_failure_during_shutdown_is_clean(domain, make_agent):

    class CollapsingTransport(loopback.Transport):
        """ Fails every receive that completes after a wake-up, the way a
            transport torn down at interpreter exit does.
        """

        woken = False

        def receive(self, timeout=None):
            received = loopback.Transport.receive(self, timeout)
            if self.woken:
                raise TransportError('transport torn down')
            return received

        def wake(self):
            self.woken = True
            loopback.Transport.wake(self)

    transport = CollapsingTransport(domain)
    agent = make_agent(transport=transport, timeout=30)
    agent.start()

    assert agent.stop(timeout=5) == True
    assert agent.error is None
    assert agent.status == topicast.agent.STOPPED
    assert transport.joined == False


def test_callback_exception_survived(make_agent, collector):

    def callback(message):
        if message.payload == b'explode':
            raise RuntimeError('callback failure')
        collector(message)

    agent = make_agent(callback=callback)
    agent.register('t')
    agent.start()

    agent.send('t', 'explode')
    agent.send('t', 'fine')

    assert collector.wait(1)
    assert collector.messages[0].payload == b'fine'
    assert agent.running == True


def test_recv_override(make_agent, domain):

    class Custom(topicast.Agent):
        def recv(self, message):
            self.received.append(message)

    agent = Custom(group='239.1.2.3', port=9999, timeout=0.5, transport=loopback.Transport(domain))
    agent.received = list()
    agent.register('t')
    agent.start()

    try:
        agent.send('t', 'hello')

        begin = time.time()
        while len(agent.received) == 0 and time.time() - begin < 2:
            time.sleep(0.01)

        assert len(agent.received) == 1
        assert agent.received[0].payload == b'hello'
    finally:
        agent.stop(timeout=2)


def test_groups_are_separate(domain, make_agent, collector):

    listener = make_agent(callback=collector, port=1111)
    listener.register('t')
    listener.start()

    other = make_agent(port=2222)
    other.send('t', 'wrong port')
    listener.send('t', 'right port')

    assert collector.wait(1)
    time.sleep(0.1)
    assert [m.payload for m in collector.messages] == [b'right port']


def test_concurrent_registration_while_receiving(make_agent, collector):

    agent = make_agent(callback=collector)
    agent.register('steady')
    agent.start()

    done = threading.Event()

    def churn():
        for i in range(2000):
            agent.register('churn')
            agent.unregister('churn')
        agent.register('churn')
        done.set()

    thread = threading.Thread(target=churn)
    thread.start()

    sent = 0
    while not done.is_set() or sent < 2000:
        agent.send('steady', 'x')
        agent.send('churn', 'y')
        sent += 1

    thread.join(30)

    def steady():
        return [m for m in list(collector.messages) if m.topic == 'steady']

    begin = time.time()
    while len(steady()) < sent and time.time() - begin < 10:
        time.sleep(0.05)

    assert len(steady()) == sent
    assert agent.running == True
    assert agent.registry.names() == ['churn', 'steady']
    assert 'churn' in agent.registry

    for message in collector.messages:
        assert message.topic in ('steady', 'churn')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

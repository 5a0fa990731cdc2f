import pytest
import threading

import topicast
from topicast.transport import loopback


class Collector:
    """ A delivery callback that remembers every message it is handed, and
        lets a test wait for a certain number of them to arrive.
    """

    def __init__(self):
        self.messages = list()
        self.condition = threading.Condition()

    def __call__(self, message):
        with self.condition:
            self.messages.append(message)
            self.condition.notify_all()

    def wait(self, count=1, timeout=2):
        with self.condition:
            self.condition.wait_for(lambda: len(self.messages) >= count, timeout)
            return len(self.messages) >= count


@pytest.fixture
def domain():
    return loopback.Domain()


@pytest.fixture
def collector():
    return Collector()


@pytest.fixture
def make_agent(domain):
    """ Create agents on a private loopback domain; any agents still running
        at the end of the test are stopped.
    """

    created = list()

    def make(**kwargs):
        kwargs.setdefault('group', '239.1.2.3')
        kwargs.setdefault('port', 9999)
        kwargs.setdefault('timeout', 0.5)
        kwargs.setdefault('transport', loopback.Transport(domain))

        agent = topicast.Agent(**kwargs)
        created.append(agent)
        return agent

    yield make

    for agent in created:
        agent.stop(timeout=2)

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

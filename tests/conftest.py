import coordkv
import pytest


@pytest.fixture(scope="session")
def daemon():
    """ A single in-process daemon shared by every test. Listening only on
        the loopback interface keeps the test suite off the network.
    """

    daemon = coordkv.Daemon(address='127.0.0.1')

    yield daemon

    daemon.stop()


@pytest.fixture(autouse=True)
def reset(request):
    """ Every test starts with an empty keyspace and auth disabled. Tests
        that never touch the daemon do not start it.
    """

    yield

    if 'daemon' in request.fixturenames:
        daemon = request.getfixturevalue('daemon')
        daemon.reset()


@pytest.fixture
def client(daemon):
    return coordkv.Client('127.0.0.1', daemon.port, timeout=5)


@pytest.fixture
def namespaced(daemon):
    return coordkv.Client('127.0.0.1', daemon.port, namespace='app/', timeout=5)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

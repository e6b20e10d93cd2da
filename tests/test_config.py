import coordkv
import pytest


def test_endpoint_default(monkeypatch):

    monkeypatch.delenv('COORDKV_ENDPOINT', raising=False)

    assert coordkv.config.endpoint() == ('localhost', 2379)
    assert coordkv.config.endpoint('otherhost:1234') == ('otherhost', 1234)


def test_endpoint_environment(monkeypatch):

    monkeypatch.setenv('COORDKV_ENDPOINT', 'tcp://example.com:4001')

    assert coordkv.config.endpoint() == ('example.com', 4001)
    assert coordkv.config.endpoint('otherhost:1234') == ('example.com', 4001)


def test_parse_endpoint():

    assert coordkv.config.parse_endpoint('host') == ('host', 2379)
    assert coordkv.config.parse_endpoint('host:80') == ('host', 80)
    assert coordkv.config.parse_endpoint(':80') == ('localhost', 80)

    with pytest.raises(coordkv.errors.ConfigurationError):
        coordkv.config.parse_endpoint('host:port')

    with pytest.raises(coordkv.errors.ConfigurationError):
        coordkv.config.parse_endpoint('host:70000')


def test_timeout(monkeypatch):

    monkeypatch.delenv('COORDKV_TIMEOUT', raising=False)
    assert coordkv.config.timeout() == 120

    monkeypatch.setenv('COORDKV_TIMEOUT', '2.5')
    assert coordkv.config.timeout() == 2.5

    monkeypatch.setenv('COORDKV_TIMEOUT', 'soon')
    with pytest.raises(coordkv.errors.ConfigurationError):
        coordkv.config.timeout()


def test_client_default_timeout(monkeypatch):

    monkeypatch.setenv('COORDKV_TIMEOUT', '7')
    client = coordkv.Client('127.0.0.1', 1)
    assert client.timeout == 7

    client.timeout = 3
    assert client.timeout == 3

    with pytest.raises(coordkv.errors.ConfigurationError):
        client.timeout = -1


def test_connect(monkeypatch):

    monkeypatch.setenv('COORDKV_ENDPOINT', '127.0.0.1:4567')

    client = coordkv.connect()
    assert client.address == '127.0.0.1'
    assert client.port == 4567
    assert client.namespace is None

    client = coordkv.connect('10.0.0.1:2380', namespace='ns/')
    assert client.address == '10.0.0.1'
    assert client.port == 2380
    assert client.namespace == b'ns/'


def test_credentials_must_be_paired():

    with pytest.raises(coordkv.errors.ConfigurationError):
        coordkv.Client('127.0.0.1', 1, user='root')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

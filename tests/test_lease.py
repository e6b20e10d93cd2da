import coordkv
import pytest
import time


def test_grant(client):

    lease = client.lease_grant(10)

    assert lease.id != 0
    assert lease.ttl == 10
    assert lease['ID'] == lease.id
    assert lease['TTL'] == 10

    response = client.lease_ttl(lease.id)
    assert response.id == lease.id
    assert response.granted_ttl == 10
    assert 0 < response.ttl <= 10


def test_grant_specific_id(client):

    lease = client.lease_grant(10, lease_id=0x4242)
    assert lease.id == 0x4242

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.lease_grant(10, lease_id=0x4242)

    with pytest.raises(coordkv.errors.InvalidArgument):
        client.lease_grant(0)


def test_attached_keys(client):

    lease = client.lease_grant(10)

    client.put('first', 'value', lease=lease.id)
    client.put('second', 'value', lease=lease.id)

    response = client.lease_ttl(lease.id, keys=True)
    assert response.keys == [b'first', b'second']

    response = client.lease_ttl(lease.id)
    assert response.keys == []


def test_revoke(client):

    lease = client.lease_grant(10)
    client.put('key', 'value', lease=lease.id)

    client.lease_revoke(lease.id)

    assert client.get('key').count == 0
    assert client.lease_ttl(lease.id).ttl == -1

    with pytest.raises(coordkv.errors.NotFound):
        client.lease_revoke(lease.id)

    with pytest.raises(coordkv.errors.NotFound):
        client.lease_keep_alive_once(lease.id)


def test_expiry(client):

    lease = client.lease_grant(1)
    client.put('key', 'value', lease=lease.id)

    time.sleep(1.5)

    assert client.get('key').count == 0
    assert client.lease_ttl(lease.id).ttl == -1


def test_keep_alive(client):

    lease = client.lease_grant(1)
    client.put('key', 'value', lease=lease.id)

    for count in range(3):
        time.sleep(0.5)
        response = client.lease_keep_alive_once(lease.id)
        assert response.id == lease.id
        assert response.ttl == 1

    assert client.get('key').count == 1


def test_deadlines(client):

    with pytest.raises(coordkv.errors.DeadlineExceeded):
        client.lease_grant(10, timeout=0)

    with pytest.raises(coordkv.errors.DeadlineExceeded):
        client.lease_ttl(1, timeout=0)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

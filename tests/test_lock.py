import coordkv
import pytest
import threading
import time


def test_lock_and_unlock(client):

    lease = client.lease_grant(10)

    handle = client.lock('resource', lease.id, timeout=1)
    assert handle.key == b'resource/%x' % (lease.id)
    assert handle.lease_id == lease.id

    response = client.get(handle.key)
    assert response.kvs[0].lease == lease.id

    client.unlock(handle.key)
    assert client.get(handle.key).count == 0


def test_exclusion(client):

    first = client.lease_grant(10)
    second = client.lease_grant(10)

    handle = client.lock('resource', first.id, timeout=1)

    with pytest.raises(coordkv.errors.DeadlineExceeded):
        client.lock('resource', second.id, timeout=0.3)

    # The daemon removes the waiter's key once its own deadline passes.

    time.sleep(0.3)

    response = client.get('resource/', range_end='resource0')
    assert [kv.key for kv in response.kvs] == [handle.key]

    client.unlock(handle)

    handle = client.lock('resource', second.id, timeout=1)
    assert handle.key == b'resource/%x' % (second.id)
    client.unlock(handle)


def test_with_lock(client):

    first = client.lease_grant(10)
    second = client.lease_grant(10)

    with client.with_lock('resource', first.id, timeout=1) as handle:
        assert client.get(handle.key).count == 1

        with pytest.raises(coordkv.errors.DeadlineExceeded):
            with client.with_lock('resource', second.id, timeout=0.1):
                pass

    assert client.get(handle.key).count == 0


def test_with_lock_releases_on_error(client):

    lease = client.lease_grant(10)

    with pytest.raises(RuntimeError):
        with client.with_lock('resource', lease.id, timeout=1) as handle:
            raise RuntimeError('failure inside the critical section')

    assert client.get(handle.key).count == 0


def test_revoke_releases(client):

    first = client.lease_grant(10)
    second = client.lease_grant(10)

    client.lock('resource', first.id, timeout=1)

    acquired = list()

    def wait_for_lock():
        acquired.append(client.lock('resource', second.id, timeout=5))

    waiter = threading.Thread(target=wait_for_lock)
    waiter.start()

    time.sleep(0.2)
    assert acquired == []

    client.lease_revoke(first.id)
    waiter.join(5)

    assert len(acquired) == 1
    assert acquired[0].key == b'resource/%x' % (second.id)


def test_more_waiters_than_workers(client, daemon):
    """ Waiters blocked on a contended lock must not prevent the holder
        from releasing it.
    """

    holder = client.lease_grant(10)
    handle = client.lock('resource', holder.id, timeout=1)

    waiters = daemon.rep.worker_count + 4
    leases = [client.lease_grant(10) for count in range(waiters)]

    results = list()
    results_lock = threading.Lock()

    def wait_for_lock(lease_id):
        try:
            result = client.lock('resource', lease_id, timeout=4)
        except coordkv.errors.CoordError as e:
            result = e

        with results_lock:
            results.append(result)

    threads = list()
    for lease in leases:
        thread = threading.Thread(target=wait_for_lock, args=(lease.id,))
        thread.start()
        threads.append(thread)

    time.sleep(0.5)

    # Neither the release nor unrelated requests are starved.

    assert client.get('unrelated', timeout=1).count == 0
    client.unlock(handle, timeout=1)

    begin = time.monotonic()
    while time.monotonic() - begin < 2:
        with results_lock:
            acquired = [result for result in results if isinstance(result, coordkv.response.LockHandle)]
        if acquired:
            break
        time.sleep(0.05)

    assert len(acquired) == 1

    # Revoking the remaining leases ends every other wait.

    for lease in leases:
        client.lease_revoke(lease.id, timeout=1)

    for thread in threads:
        thread.join(5)

    assert len(results) == waiters


def test_with_lock_keeps_body_error(client):

    lease = client.lease_grant(10)
    release = client.locks.unlock

    def failing_unlock(key, timeout=None):
        raise coordkv.errors.DeadlineExceeded('UNLOCK: no response')

    client.locks.unlock = failing_unlock

    try:
        with pytest.raises(RuntimeError):
            with client.with_lock('resource', lease.id, timeout=1) as handle:
                raise RuntimeError('failure inside the critical section')

        # Without an error from the body, a failed release is raised.

        with pytest.raises(coordkv.errors.DeadlineExceeded):
            with client.with_lock('other', lease.id, timeout=1) as other:
                pass
    finally:
        client.locks.unlock = release

    client.unlock(handle)
    client.unlock(other)
    assert client.get(handle.key).count == 0


def test_unknown_lease(client):

    with pytest.raises(coordkv.errors.NotFound):
        client.lock('resource', 0x1234, timeout=1)


def test_namespaced_key_is_visible(client, namespaced):

    lease = client.lease_grant(10)

    handle = namespaced.lock('resource', lease.id, timeout=1)
    assert handle.key == b'app/resource/%x' % (lease.id)

    response = client.get('app/resource/', range_end='app/resource0')
    assert response.count == 1

    namespaced.unlock(handle)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

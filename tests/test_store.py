import coordkv
import pytest
import time

from coordkv.store import in_range, SENTINEL, Store


def test_in_range():

    assert in_range(b'a', b'a', b'') == True
    assert in_range(b'ab', b'a', b'') == False

    assert in_range(b'a', b'a', SENTINEL) == True
    assert in_range(b'zzz', b'a', SENTINEL) == True
    assert in_range(b'0', b'a', SENTINEL) == False

    assert in_range(b'b', b'a', b'c') == True
    assert in_range(b'c', b'a', b'c') == False


def test_revisions():

    store = Store()
    assert store.revision == 1

    store.put(b'a', b'1')
    store.put(b'a', b'2')
    assert store.revision == 3

    # Deleting nothing does not advance the revision.

    response = store.delete_range(b'missing')
    assert response['deleted'] == 0
    assert store.revision == 3

    store.reset()
    assert store.revision == 1
    assert store.range({'key': b'a'})['count'] == 0


def test_txn_without_writes():

    store = Store()
    store.put(b'a', b'1')

    compare = [{'target': 3, 'result': 0, 'key': b'a', 'value': b'1'}]
    success = [{'request_range': {'key': b'a'}}]

    response = store.txn(compare, success, [])
    assert response['succeeded'] == True
    assert store.revision == 2


def test_compare_missing_key():

    store = Store()

    # A missing key never compares equal by value, but has version zero.

    compare = [{'target': 3, 'result': 0, 'key': b'a', 'value': b''}]
    assert store.txn(compare, [], [])['succeeded'] == False

    compare = [{'target': 0, 'result': 0, 'key': b'a', 'version': 0}]
    assert store.txn(compare, [], [])['succeeded'] == True


def test_expire():

    store = Store()

    lease = store.lease_grant(1)['id']
    store.put(b'a', b'1', lease)

    assert store.expire() == []

    store._leases[lease].expiry = time.monotonic() - 1
    assert store.expire() == [lease]
    assert store.range({'key': b'a'})['count'] == 0


def test_lock_order():

    store = Store()

    first = store.lease_grant(10)['id']
    second = store.lease_grant(10)['id']

    held = store.lock(b'name', first)
    assert held['key'] == b'name/%x' % (first)

    deadline = time.monotonic() + 0.1

    with pytest.raises(coordkv.errors.DeadlineExceeded):
        store.lock(b'name', second, deadline)

    # The abandoned attempt left nothing behind.

    response = store.range({'key': b'name/', 'range_end': b'name0'})
    assert response['count'] == 1

    store.unlock(held['key'])

    held = store.lock(b'name', second, time.monotonic() + 0.1)
    assert held['key'] == b'name/%x' % (second)


def test_watch_history():

    store = Store()

    start = store.revision + 1
    store.put(b'a', b'1')
    store.put(b'b', b'2')
    store.delete_range(b'a')

    response = store.watch(b'a', b'', start, False, time.monotonic() + 0.1)
    assert [event['type'] for event in response['events']] == ['PUT', 'DELETE']

    response = store.watch(b'a', SENTINEL, start, False, time.monotonic() + 0.1)
    assert len(response['events']) == 3

    with pytest.raises(coordkv.errors.DeadlineExceeded):
        store.watch(b'a', b'', 0, False, time.monotonic() + 0.1)


def test_history_is_bounded():

    store = Store()
    store.history_limit = 3

    for count in range(5):
        store.put(b'a', b'%d' % (count))

    # Revisions 2 through 6 were written; only the last three remain.

    assert len(store._history) == 3
    assert store.compacted == 3

    with pytest.raises(coordkv.errors.InvalidArgument):
        store.watch(b'a', b'', 3, False, time.monotonic() + 0.1)

    response = store.watch(b'a', b'', 4, False, time.monotonic() + 0.1)
    assert [event['kv']['mod_revision'] for event in response['events']] == [4, 5, 6]

    store.reset()
    assert store.compacted == 0
    assert len(store._history) == 0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" The in-memory keyspace behind the reference daemon. A :class:`Store`
    keeps every key with its create and modify revisions, a global revision
    counter, the leases and the keys attached to them, and the history of
    changes used to answer watch requests.

    All public methods are thread-safe; a single lock protects the whole
    keyspace, and the :attr:`Store.changed` condition is notified whenever
    the keyspace changes so that blocked lock and watch requests can
    re-evaluate.
"""

import collections
import itertools
import logging
import math
import random
import threading
import time

from . import errors

logger = logging.getLogger(__name__)

SENTINEL = b'\x00'

# Sort targets and orders, by wire code.

SORT_FIELDS = ('key', 'version', 'create_revision', 'mod_revision', 'value')
SORT_NONE = 0
SORT_ASCEND = 1
SORT_DESCEND = 2

# Comparison targets and results, by wire code.

COMPARE_FIELDS = ('version', 'create_revision', 'mod_revision', 'value', 'lease')
EQUAL = 0
GREATER = 1
LESS = 2
NOT_EQUAL = 3


def in_range(key, start, end):
    """ Return True if *key* falls within the range [*start*, *end*). An
        empty *end* selects *start* alone; the sentinel selects every key
        greater than or equal to *start*.
    """

    if end == b'':
        return key == start

    if end == SENTINEL:
        return key >= start

    return start <= key < end



class _Lease:

    def __init__(self, id, ttl):

        self.id = id
        self.ttl = ttl
        self.keys = set()
        self.refresh()


    def refresh(self):
        self.expiry = time.monotonic() + self.ttl


    def remaining(self):
        remaining = self.expiry - time.monotonic()
        if remaining <= 0:
            return 0
        return int(math.ceil(remaining))


# end of class _Lease



class Store:
    """ The change history kept for watch requests is bounded by
        :attr:`history_limit` events; once older events are discarded,
        :attr:`compacted` is the highest revision no longer fully retained.
    """

    history_limit = 10000

    def __init__(self):

        self._lock = threading.RLock()
        self.changed = threading.Condition(self._lock)
        self.reset()


    def reset(self):
        """ Discard every key, lease, and historical event.
        """

        with self._lock:
            self.revision = 1
            self._kvs = dict()
            self._leases = dict()
            self._history = collections.deque()
            self.compacted = 0

            # Lease ids are never reused within a store; start somewhere
            # unpredictable so that ids from a restarted daemon are unlikely
            # to collide with ids held by old clients.

            start = random.randrange(0x1000, 0x7FFFFFFF)
            self._lease_ids = itertools.count(start)

            self.changed.notify_all()


    def header(self):
        return {'revision': self.revision}


    def size(self):
        """ Approximate number of bytes held by the keyspace. """

        with self._lock:
            total = 0
            for record in self._kvs.values():
                total += len(record['key']) + len(record['value'])
            return total


    # Internal helpers. These assume the lock is already held.

    def _select(self, key, range_end):

        if range_end == b'':
            if key in self._kvs:
                return [self._kvs[key]]
            return []

        records = list()
        for stored in sorted(self._kvs):
            if in_range(stored, key, range_end):
                records.append(self._kvs[stored])

        return records


    def _put(self, key, value, lease, revision):

        previous = self._kvs.get(key)

        record = dict()
        record['key'] = key
        record['value'] = value
        record['mod_revision'] = revision
        record['lease'] = lease

        if previous is None:
            record['create_revision'] = revision
            record['version'] = 1
        else:
            record['create_revision'] = previous['create_revision']
            record['version'] = previous['version'] + 1

            old_lease = previous['lease']
            if old_lease and old_lease != lease and old_lease in self._leases:
                self._leases[old_lease].keys.discard(key)

        if lease:
            self._leases[lease].keys.add(key)

        self._kvs[key] = record
        self._record(revision, 'PUT', dict(record), previous)

        return previous


    def _delete(self, records, revision):

        for record in records:
            key = record['key']
            del self._kvs[key]

            lease = record['lease']
            if lease and lease in self._leases:
                self._leases[lease].keys.discard(key)

            tombstone = dict()
            tombstone['key'] = key
            tombstone['mod_revision'] = revision
            self._record(revision, 'DELETE', tombstone, record)


    def _record(self, revision, type, kv, previous):

        self._history.append((revision, type, kv, previous))

        while len(self._history) > self.history_limit:
            dropped = self._history.popleft()
            self.compacted = dropped[0]


    def _check_lease(self, lease):

        if lease and lease not in self._leases:
            raise errors.NotFound('requested lease not found')


    def _range(self, request):

        key = request['key']
        range_end = request.get('range_end', b'')

        records = self._select(key, range_end)

        target = request.get('sort_target', 0)
        order = request.get('sort_order', SORT_NONE)

        try:
            field = SORT_FIELDS[target]
        except IndexError:
            raise errors.InvalidArgument('invalid sort target: ' + repr(target))

        if order not in (SORT_NONE, SORT_ASCEND, SORT_DESCEND):
            raise errors.InvalidArgument('invalid sort order: ' + repr(order))

        # Records are already in key order; any other target with no
        # explicit order is treated as ascending.

        if order == SORT_NONE and target != 0:
            order = SORT_ASCEND

        if order != SORT_NONE:
            descending = (order == SORT_DESCEND)
            records.sort(key=lambda record: record[field], reverse=descending)

        count = len(records)
        limit = request.get('limit', 0)
        more = False

        if limit and count > limit:
            records = records[:limit]
            more = True

        response = dict()
        response['header'] = self.header()
        response['count'] = count
        response['more'] = more

        if request.get('count_only'):
            response['kvs'] = []
        elif request.get('keys_only'):
            kvs = list()
            for record in records:
                stripped = dict(record)
                stripped['value'] = b''
                kvs.append(stripped)
            response['kvs'] = kvs
        else:
            response['kvs'] = [dict(record) for record in records]

        return response


    def _compare(self, clause):

        record = self._kvs.get(clause['key'])

        try:
            field = COMPARE_FIELDS[clause['target']]
        except IndexError:
            raise errors.InvalidArgument('invalid comparison target: ' + repr(clause['target']))

        if record is None:
            # A missing key has no value to compare; every other target
            # compares as zero.
            if field == 'value':
                return False
            actual = 0
        else:
            actual = record[field]

        expected = clause.get(field)
        if expected is None:
            expected = b'' if field == 'value' else 0

        result = clause['result']

        if result == EQUAL:
            return actual == expected
        if result == GREATER:
            return actual > expected
        if result == LESS:
            return actual < expected
        if result == NOT_EQUAL:
            return actual != expected

        raise errors.InvalidArgument('invalid comparison result: ' + repr(result))


    # Public interface.

    def range(self, request):
        """ Return the keys selected by a RANGE *request*. The request is a
            dictionary with bytes for the 'key' and 'range_end' fields.
        """

        with self._lock:
            return self._range(request)


    def put(self, key, value, lease=0, prev_kv=False):

        with self._lock:
            self._check_lease(lease)

            revision = self.revision + 1
            previous = self._put(key, value, lease, revision)
            self.revision = revision
            self.changed.notify_all()

            response = dict()
            response['header'] = self.header()
            if prev_kv and previous is not None:
                response['prev_kv'] = previous

            return response


    def delete_range(self, key, range_end=b'', prev_kv=False):

        with self._lock:
            records = self._select(key, range_end)

            if records:
                revision = self.revision + 1
                self._delete(records, revision)
                self.revision = revision
                self.changed.notify_all()

            response = dict()
            response['header'] = self.header()
            response['deleted'] = len(records)
            if prev_kv:
                response['prev_kvs'] = records

            return response


    def txn(self, compare, success, failure):
        """ Evaluate every clause in *compare*, then apply either the
            *success* or the *failure* operations. Writes within the branch
            share a single new revision, and reads within the branch observe
            the writes that precede them.
        """

        with self._lock:
            succeeded = all(self._compare(clause) for clause in compare)

            if succeeded:
                operations = success
            else:
                operations = failure

            # Validate before applying anything, so that a branch either
            # applies completely or not at all.

            for operation in operations:
                if 'request_put' in operation:
                    self._check_lease(operation['request_put'].get('lease', 0))
                elif 'request_range' in operation or 'request_delete_range' in operation:
                    pass
                else:
                    raise errors.InvalidArgument('unrecognized transaction operation: ' + repr(operation))

            revision = self.revision + 1
            written = False
            responses = list()

            for operation in operations:
                if 'request_range' in operation:
                    result = self._range(operation['request_range'])
                    responses.append({'response_range': result})

                elif 'request_put' in operation:
                    request = operation['request_put']
                    previous = self._put(request['key'], request['value'], request.get('lease', 0), revision)
                    written = True

                    result = dict()
                    if request.get('prev_kv') and previous is not None:
                        result['prev_kv'] = previous
                    responses.append({'response_put': result})

                else:
                    request = operation['request_delete_range']
                    records = self._select(request['key'], request.get('range_end', b''))
                    if records:
                        self._delete(records, revision)
                        written = True

                    result = dict()
                    result['deleted'] = len(records)
                    if request.get('prev_kv'):
                        result['prev_kvs'] = records
                    responses.append({'response_delete_range': result})

            if written:
                self.revision = revision
                self.changed.notify_all()

            header = self.header()
            for op in responses:
                for result in op.values():
                    result['header'] = header

            response = dict()
            response['header'] = header
            response['succeeded'] = succeeded
            response['responses'] = responses
            return response


    def lease_grant(self, ttl, id=0):

        if ttl <= 0:
            raise errors.InvalidArgument('lease TTL must be positive')

        with self._lock:
            if id:
                if id in self._leases:
                    raise errors.FailedPrecondition('lease already exists')
            else:
                id = next(self._lease_ids)
                while id in self._leases:
                    id = next(self._lease_ids)

            self._leases[id] = _Lease(id, ttl)

            response = dict()
            response['header'] = self.header()
            response['id'] = id
            response['ttl'] = ttl
            return response


    def lease_revoke(self, id):

        with self._lock:
            try:
                lease = self._leases[id]
            except KeyError:
                raise errors.NotFound('requested lease not found')

            self._revoke(lease)

            response = dict()
            response['header'] = self.header()
            return response


    def _revoke(self, lease):

        records = [self._kvs[key] for key in sorted(lease.keys) if key in self._kvs]

        if records:
            revision = self.revision + 1
            self._delete(records, revision)
            self.revision = revision

        del self._leases[lease.id]
        self.changed.notify_all()


    def lease_ttl(self, id, keys=False):

        with self._lock:
            response = dict()
            response['header'] = self.header()
            response['id'] = id

            try:
                lease = self._leases[id]
            except KeyError:
                response['ttl'] = -1
                response['granted_ttl'] = 0
                return response

            response['ttl'] = lease.remaining()
            response['granted_ttl'] = lease.ttl

            if keys:
                response['keys'] = sorted(lease.keys)

            return response


    def lease_keepalive(self, id):

        with self._lock:
            try:
                lease = self._leases[id]
            except KeyError:
                raise errors.NotFound('requested lease not found')

            lease.refresh()

            response = dict()
            response['header'] = self.header()
            response['id'] = id
            response['ttl'] = lease.ttl
            return response


    def expire(self):
        """ Revoke every lease whose TTL has elapsed. Returns the list of
            expired lease ids.
        """

        expired = list()
        now = time.monotonic()

        with self._lock:
            for lease in list(self._leases.values()):
                if lease.expiry <= now:
                    self._revoke(lease)
                    expired.append(lease.id)

        for id in expired:
            logger.info("lease %x expired", id)

        return expired


    def lock(self, name, lease, deadline=None):
        """ Acquire the lock *name* on behalf of *lease*, blocking until it is
            held or until the monotonic *deadline* passes. The key created to
            represent ownership is returned.
        """

        prefix = name + b'/'
        key = prefix + (b'%x' % (lease))

        with self._lock:
            self._check_lease(lease)

            created = False
            if key not in self._kvs:
                revision = self.revision + 1
                self._put(key, b'', lease, revision)
                self.revision = revision
                self.changed.notify_all()
                created = True

            mine = self._kvs[key]['create_revision']

            while True:
                record = self._kvs.get(key)

                if record is None or record['create_revision'] != mine:
                    raise errors.FailedPrecondition('lock key deleted while waiting, the lease expired or was revoked')

                blocked = False
                for stored, other in self._kvs.items():
                    if stored.startswith(prefix) and other['create_revision'] < mine:
                        blocked = True
                        break

                if blocked == False:
                    response = dict()
                    response['header'] = self.header()
                    response['key'] = key
                    return response

                if deadline is None:
                    self.changed.wait()
                    continue

                remaining = deadline - time.monotonic()

                if remaining <= 0:
                    if created:
                        revision = self.revision + 1
                        self._delete([record], revision)
                        self.revision = revision
                        self.changed.notify_all()

                    raise errors.DeadlineExceeded('timed out waiting for lock')

                self.changed.wait(remaining)


    def unlock(self, key):

        with self._lock:
            return self.delete_range(key)


    def watch(self, key, range_end=b'', start_revision=0, prev_kv=False, deadline=None):
        """ Return every change to the selected keys at or after
            *start_revision*. With no start revision, wait for the next
            change. Blocks until at least one event is available or the
            monotonic *deadline* passes. A *start_revision* at or below
            :attr:`compacted` raises InvalidArgument; those events are gone.
        """

        with self._lock:
            if not start_revision:
                start_revision = self.revision + 1

            while True:
                if start_revision <= self.compacted:
                    raise errors.InvalidArgument('required revision has been compacted')

                # Newest first, stopping at the first event older than the
                # start revision.

                selected = list()
                for entry in reversed(self._history):
                    if entry[0] < start_revision:
                        break
                    selected.append(entry)

                selected.reverse()
                events = list()

                for revision, type, kv, previous in selected:
                    if in_range(kv['key'], key, range_end) == False:
                        continue

                    event = dict()
                    event['type'] = type
                    event['kv'] = kv
                    if prev_kv and previous is not None:
                        event['prev_kv'] = previous
                    events.append(event)

                if events:
                    response = dict()
                    response['header'] = self.header()
                    response['events'] = events
                    return response

                if deadline is None:
                    self.changed.wait()
                    continue

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise errors.DeadlineExceeded('no events before the deadline')

                self.changed.wait(remaining)


# end of class Store


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" Client-side representations of daemon responses. Each class is built
    from the fields of a response payload; byte strings arrive base64
    encoded and are decoded here, so that callers only ever see bytes for
    keys and values.
"""

from .json import unpack


class Header:
    """ Common to every response: the store revision as of the response.
    """

    def __init__(self, fields=None):

        if fields is None:
            fields = dict()

        self.revision = fields.get('revision', 0)
        self.member_id = fields.get('member_id', 0)


    def __repr__(self):
        return 'Header(revision=%d)' % (self.revision)


# end of class Header



class Response:
    """ Generic response. Every field of the payload is available as an
        attribute; the ``header`` field becomes a :class:`Header`.
    """

    def __init__(self, fields):

        fields = dict(fields)
        self.header = Header(fields.pop('header', None))

        for key,value in fields.items():
            setattr(self, key, value)


    def __repr__(self):
        attributes = ', '.join('%s=%r' % (key, value) for key,value in vars(self).items())
        return '%s(%s)' % (type(self).__name__, attributes)


# end of class Response



class KeyValue:

    def __init__(self, fields):

        self.key = unpack(fields.get('key'))
        self.value = unpack(fields.get('value'))
        self.create_revision = fields.get('create_revision', 0)
        self.mod_revision = fields.get('mod_revision', 0)
        self.version = fields.get('version', 0)
        self.lease = fields.get('lease', 0)


    def __repr__(self):
        return 'KeyValue(key=%r, value=%r, version=%d)' % (self.key, self.value, self.version)


    @classmethod
    def optional(cls, fields):
        if fields is None:
            return None
        return cls(fields)


# end of class KeyValue



class RangeResponse(Response):
    """ The result of a RANGE request. :attr:`kvs` is empty for a
        ``count_only`` request; :attr:`count` is always the number of keys
        in the range.
    """

    def __init__(self, fields):

        Response.__init__(self, fields)

        self.kvs = [KeyValue(kv) for kv in fields.get('kvs', ())]
        self.count = fields.get('count', 0)
        self.more = fields.get('more', False)


# end of class RangeResponse



class PutResponse(Response):

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.prev_kv = KeyValue.optional(fields.get('prev_kv'))


# end of class PutResponse



class DeleteRangeResponse(Response):

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.deleted = fields.get('deleted', 0)
        self.prev_kvs = [KeyValue(kv) for kv in fields.get('prev_kvs', ())]


# end of class DeleteRangeResponse



class TxnResponse(Response):
    """ The result of a TXN request. :attr:`succeeded` is True if every
        comparison held and the success branch ran; :attr:`responses`
        holds one response per operation of whichever branch ran.
    """

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.succeeded = fields.get('succeeded', False)

        responses = list()
        for op in fields.get('responses', ()):
            if 'response_range' in op:
                responses.append(RangeResponse(op['response_range']))
            elif 'response_put' in op:
                responses.append(PutResponse(op['response_put']))
            elif 'response_delete_range' in op:
                responses.append(DeleteRangeResponse(op['response_delete_range']))
            else:
                raise ValueError('unrecognized transaction response: ' + repr(op))

        self.responses = responses


# end of class TxnResponse



class Lease(Response):
    """ A granted lease. The *id* is assigned by the daemon and is the value
        to pass to every other lease, put, and lock operation.
    """

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.id = fields.get('id', 0)
        self.ttl = fields.get('ttl', 0)


    def __getitem__(self, name):
        # Allows lease['ID'], the spelling used by the wire format of other
        # clients for this store.

        if name.lower() == 'id':
            return self.id
        if name.lower() == 'ttl':
            return self.ttl
        raise KeyError(name)


# end of class Lease



class LeaseTTL(Response):

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.id = fields.get('id', 0)
        self.ttl = fields.get('ttl', -1)
        self.granted_ttl = fields.get('granted_ttl', 0)
        self.keys = [unpack(key) for key in fields.get('keys', ())]


# end of class LeaseTTL



class LeaseKeepAlive(Response):

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.id = fields.get('id', 0)
        self.ttl = fields.get('ttl', 0)


# end of class LeaseKeepAlive



class LockHandle(Response):
    """ Proof of a held lock. The :attr:`key` is the full key created in the
        store, namespace included, and is the value to hand back to
        :func:`coordkv.lock.LockCoordinator.unlock`. A handle is only
        meaningful while the lease it was acquired with is alive.
    """

    def __init__(self, fields, lease_id=None):

        Response.__init__(self, fields)
        self.key = unpack(fields.get('key'))
        self.lease_id = lease_id


# end of class LockHandle



class Event:

    def __init__(self, fields):

        self.type = fields.get('type', 'PUT')
        self.kv = KeyValue(fields.get('kv', {}))
        self.prev_kv = KeyValue.optional(fields.get('prev_kv'))


    def __repr__(self):
        return 'Event(%s, %r)' % (self.type, self.kv)


# end of class Event



class WatchResponse(Response):

    def __init__(self, fields):

        Response.__init__(self, fields)
        self.events = [Event(event) for event in fields.get('events', ())]


    def __iter__(self):
        return iter(self.events)


    def __len__(self):
        return len(self.events)


# end of class WatchResponse


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

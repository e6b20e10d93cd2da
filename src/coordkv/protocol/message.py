""" A class representation of a coordkv message, including subclasses for
    specific messages.
"""

import itertools
import threading
import time as timemodule

from .. import json


# This is the version of the on-the-wire protocol implemented here. The
# version is identified by a single byte, and is the first frame of every
# multipart message.

version = b'1'


class Message:
    """ The :class:`Message` provides a very thin encapsulation of what it
        means to be a message in a coordkv context. This class is used
        directly for messages that do not result in a response, namely
        the ACK and REP messages sent back by the daemon.

        The fields are in order of how they are represented on the wire,
        except for the identification number, which is automatically
        generated for request messages and thus comes last.

        :ivar payload: A :class:`Payload` instance, or None.
        :ivar valid_types: A set of valid strings for the message type.
        :ivar timestamp: A UNIX epoch timestamp for the message creation time.
    """

    valid_types = set(('ACK', 'REP'))

    def __init__(self, type, payload=None, id=None):

        if type in self.valid_types:
            pass
        else:
            raise ValueError('invalid message type: ' + repr(type))

        self.id = id
        self.type = type
        self.payload = payload
        self.timestamp = timemodule.time()

        self.parts = None


    def __iter__(self):
        self._finalize()
        return iter(self.parts)


    def __repr__(self):
        self._finalize()
        return repr(self.parts)


    def _finalize(self):
        """ Take the contents of this :class:`Message`, interpret them as
            bytes, and prepare the tuple that will be used for the multipart
            transmission on the wire.
        """

        parts = self.parts

        if parts is None:

            id = self.id
            type = self.type
            payload = self.payload

            if id is None:
                raise RuntimeError('messages must have an id to be put on the wire')

            try:
                id.decode
            except AttributeError:
                id = '%08x' % (id)
                id = id.encode()

            type = type.encode()

            if payload is None:
                payload = b''
            else:
                payload = payload.encapsulate()

            parts = (version, id, type, payload)
            self.parts = parts


    @classmethod
    def from_parts(cls, parts):
        """ Reconstitute a :class:`Message` (or subclass) from the multipart
            tuple produced by :func:`_finalize`.
        """

        their_version, id, type, payload = parts

        if their_version != version:
            raise ValueError("message is protocol %s, recipient expects %s" % (repr(their_version), repr(version)))

        type = type.decode()

        if payload == b'':
            payload = None
        else:
            payload = Payload.from_encapsulated(payload)

        return cls(type, payload, id)


# end of class Message



class Request(Message):
    """ A :class:`Request` adds the ability to wait for, and retain, the
        response. This is the class that will be used on the client side
        when a daemon is expected to provide a response.

        :ivar response: The final response to a request (also a Message).
    """

    valid_types = set((
        'RANGE', 'PUT', 'DELETE_RANGE', 'TXN',
        'LEASE_GRANT', 'LEASE_REVOKE', 'LEASE_TTL', 'LEASE_KEEPALIVE',
        'LOCK', 'UNLOCK', 'WATCH',
        'AUTHENTICATE', 'AUTH_ENABLE', 'AUTH_DISABLE',
        'USER_ADD', 'USER_GET', 'USER_DELETE', 'USER_CHANGE_PASSWORD',
        'USER_LIST', 'USER_GRANT_ROLE', 'USER_REVOKE_ROLE',
        'ROLE_ADD', 'ROLE_GET', 'ROLE_DELETE', 'ROLE_LIST',
        'ROLE_GRANT_PERMISSION', 'ROLE_REVOKE_PERMISSION',
        'STATUS', 'ALARM', 'MEMBER_LIST',
    ))

    def __init__(self, type, payload=None, id=None):

        # Requests are generally initiated without an id number, but they're
        # required to have one, and it must be locally unique so that the
        # response can be tied back to the request that generated it.

        if id is None:
            id = _id_next()

        Message.__init__(self, type, payload, id)

        self.response = None

        self.ack_event = threading.Event()
        self.rep_event = threading.Event()


    def __repr__(self):
        self._finalize()
        request = 'REQ: ' + repr(self.parts)

        if self.response is None:
            response = 'REP: None'
        else:
            response = 'REP: ' + repr(tuple(self.response))

        return request + ', ' + response


    def _complete_ack(self):
        """ The request has been acknowledged; signal any callers blocking
            via :func:`wait_ack` to proceed.
        """

        self.ack_event.set()


    def _complete(self, response):
        """ Locally store the response and signal any callers blocking via
            :func:`wait` to proceed.
        """

        self.response = response
        self.ack_event.set()
        self.rep_event.set()


    def poll(self):
        """ Return True if the request is complete, otherwise return False.
        """

        return self.rep_event.is_set()


    def wait_ack(self, timeout):
        """ Block until the request has been acknowledged. Returns True if
            the acknowledgement arrived, False if *timeout* seconds elapsed
            first.
        """

        return self.ack_event.wait(timeout)


    def wait(self, timeout=60):
        """ Block until the request has been handled. The response is always
            returned; it will be None if the request is still pending.
        """

        self.rep_event.wait(timeout)
        return self.response


# end of class Request



class Payload:
    """ This is a lightweight class to encapsulate the fields of a request or
        response for later inclusion in a :class:`Message` instance. Fields
        are regular attributes; any attribute named in the :attr:`omit` set
        is excluded from the encapsulation, as are attributes set to None.
    """

    omit = set(('_encapsulated', 'omit'))

    def __init__(self, error=None, **kwargs):

        self.error = error
        self._encapsulated = None

        for key,value in kwargs.items():
            setattr(self, key, value)


    def __repr__(self):
        return self.encapsulate().decode()


    def encapsulate(self):
        """ Encapsulate the fields as a dictionary, and return the JSON
            encoding of that dictionary. Calling this method multiple times
            will return the cached encapsulation rather than generate it anew.
        """

        if self._encapsulated:
            return self._encapsulated

        payload = self.fields()
        payload = json.dumps(payload)

        self._encapsulated = payload
        return payload


    def fields(self):
        """ Return the fields of this payload as a new dictionary.
        """

        fields = dict()

        for key,value in vars(self).items():
            if key in self.omit or value is None:
                continue
            fields[key] = value

        return fields


    def get(self, key, default=None):
        return getattr(self, key, default)


    @classmethod
    def from_encapsulated(cls, encapsulated):

        fields = json.loads(encapsulated)

        if isinstance(fields, dict):
            pass
        else:
            raise ValueError('payload must be a JSON object')

        return cls(**fields)


# end of class Payload



_id_min = 0
_id_max = 0xFFFFFFFF
_id_lock = threading.Lock()
_id_ticker = itertools.count(_id_min)


def _id_next():
    """ Return the next request identification number for subroutines to
        use when constructing a message.
    """

    global _id_ticker

    with _id_lock:
        id = next(_id_ticker)

        if id >= _id_max:
            _id_ticker = itertools.count(_id_min)

    id = '%08x' % (id)
    id = id.encode()
    return id


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" Namespace translation. A :class:`RequestTranslator` rewrites every key
    and range boundary of an outgoing request so that a client is confined
    to the keys beginning with its namespace, and converts symbolic request
    options into the integer codes used on the wire.

    Keys are never stripped on the way back: a key returned by the store
    still carries the namespace prefix.
"""

from __future__ import annotations

from typing import Optional, Union

from . import errors
from .json import to_bytes


# A range end of a single zero byte means "no upper bound". Within a
# namespace it is retargeted to the upper bound of the namespace itself.

SENTINEL = b'\x00'

SORT_TARGET = {
    'key': 0,
    'version': 1,
    'create': 2,
    'mod': 3,
    'value': 4,
}

SORT_ORDER = {
    'none': 0,
    'ascend': 1,
    'descend': 2,
}

Bytes = Union[bytes, str]


def lookup(table: dict, symbol, kind: str) -> int:
    """ Return the wire code for *symbol* in *table*. Unknown symbols raise
        ValueError; nothing is ever defaulted.
    """

    try:
        return table[symbol]
    except (KeyError, TypeError):
        pass

    choices = ', '.join(sorted(table))
    raise ValueError("invalid %s %r, expected one of: %s" % (kind, symbol, choices))



def increment_last_byte(prefix: bytes) -> bytes:
    """ Return *prefix* with its final byte incremented by one, preserving
        all preceding bytes. This is the exclusive upper bound of every key
        beginning with *prefix*.
    """

    if len(prefix) == 0:
        raise errors.ConfigurationError('cannot compute the upper bound of an empty prefix')

    last = prefix[-1]

    if last == 0xFF:
        raise errors.ConfigurationError('the last byte of %r is 0xFF, its upper bound would overflow' % (prefix,))

    return prefix[:-1] + bytes((last + 1,))



def prepend(prefix: bytes, key: Bytes) -> bytes:
    return prefix + to_bytes(key)



class RequestTranslator:
    """ Build request payloads confined to *namespace*. A namespace of None
        produces a pass-through translator, used by clients without a
        namespace; keys and boundaries are sent unchanged, and the zero-byte
        sentinel keeps its store-wide meaning.

        The namespace is validated once, here: it must be non-empty, and its
        last byte must not be 0xFF.
    """

    def __init__(self, namespace: Optional[Bytes] = None):

        if namespace is None:
            self.namespace = None
            self.upper_bound = None
            return

        namespace = to_bytes(namespace)

        if len(namespace) == 0:
            raise errors.ConfigurationError('the namespace must not be empty')

        self.namespace = namespace
        self.upper_bound = increment_last_byte(namespace)


    def __repr__(self):
        return 'RequestTranslator(%r)' % (self.namespace,)


    def prefix(self, key: Bytes) -> bytes:
        """ Return *key* as it exists in the store. """

        if self.namespace is None:
            return to_bytes(key)

        return prepend(self.namespace, key)


    def range_end(self, range_end: Optional[Bytes]) -> Optional[bytes]:
        """ Translate a range boundary. None and the empty string are
            returned unchanged (no range); the sentinel becomes the upper
            bound of the namespace; anything else is prefixed like a key.
        """

        if range_end is None:
            return None

        range_end = to_bytes(range_end)

        if range_end == b'':
            return range_end

        if self.namespace is None:
            return range_end

        if range_end == SENTINEL:
            return self.upper_bound

        return prepend(self.namespace, range_end)


    def build_get(self, key, range_end=None, sort_order=None, sort_target=None,
                  count_only=None, keys_only=None, limit=None, serializable=None):
        """ Return the payload fields for a RANGE request. Options left as
            None are omitted from the request rather than defaulted.
        """

        request = dict()
        request['key'] = self.prefix(key)

        range_end = self.range_end(range_end)
        if range_end is not None:
            request['range_end'] = range_end

        if sort_order is not None:
            request['sort_order'] = lookup(SORT_ORDER, sort_order, 'sort order')

        if sort_target is not None:
            request['sort_target'] = lookup(SORT_TARGET, sort_target, 'sort target')

        if count_only is not None:
            request['count_only'] = bool(count_only)

        if keys_only is not None:
            request['keys_only'] = bool(keys_only)

        if limit is not None:
            request['limit'] = int(limit)

        if serializable is not None:
            request['serializable'] = bool(serializable)

        return request


    def build_delete(self, key, range_end='', prev_kv=None):
        """ Return the payload fields for a DELETE_RANGE request. An empty
            *range_end* deletes exactly one key.
        """

        if range_end is None:
            range_end = ''

        request = dict()
        request['key'] = self.prefix(key)
        request['range_end'] = self.range_end(range_end)

        if prev_kv is not None:
            request['prev_kv'] = bool(prev_kv)

        return request


    def build_put(self, key, value, lease=None, prev_kv=None):
        """ Return the payload fields for a PUT request. The lease field is
            only present when a *lease* was supplied, which keeps an omitted
            lease distinguishable from an explicit lease of 0.
        """

        request = dict()
        request['key'] = self.prefix(key)
        request['value'] = to_bytes(value)

        if lease is not None:
            request['lease'] = int(lease)

        if prev_kv is not None:
            request['prev_kv'] = bool(prev_kv)

        return request


    def build_watch(self, key, range_end=None, start_revision=None, prev_kv=None):
        """ Return the payload fields for a WATCH request. Boundaries are
            translated exactly as they are for :func:`build_get`.
        """

        request = dict()
        request['key'] = self.prefix(key)

        range_end = self.range_end(range_end)
        if range_end is not None:
            request['range_end'] = range_end

        if start_revision is not None:
            request['start_revision'] = int(start_revision)

        if prev_kv is not None:
            request['prev_kv'] = bool(prev_kv)

        return request


# end of class RequestTranslator


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

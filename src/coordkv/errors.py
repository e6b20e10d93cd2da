""" Exception classes raised by coordkv. The daemon reports a failure as a
    small dictionary naming the exception class; :func:`from_remote` turns
    that dictionary back into an instance of the same class on the client
    side, so that callers can branch on what actually happened.
"""

from __future__ import annotations

from typing import Optional


class CoordError(Exception):
    """ Base class for all coordkv errors. """


class ConfigurationError(CoordError, ValueError):
    """ A client or translator was constructed with unusable settings. """


class DeadlineExceeded(CoordError):
    """ A request did not complete within its allotted time. """


class FailedPrecondition(CoordError):
    """ The request is invalid given the current auth or lease state. """


class InvalidArgument(CoordError, ValueError):
    """ The request itself is malformed, or credentials did not match. """


class NotFound(CoordError):
    """ The lease, or other named resource, does not exist. """


class PermissionDenied(CoordError):
    """ The authenticated user lacks permission for the request. """


class Unauthenticated(CoordError):
    """ Auth is enabled and the request carried no valid token. """


class TransportError(CoordError):
    """ Base class for all transport-layer errors. """


class Unavailable(TransportError):
    """ The daemon did not acknowledge a request. """


class RemoteError(CoordError):
    """ The daemon raised something without a local counterpart. The
        remote exception class name is retained as :attr:`remote_type`.
    """

    def __init__(self, text, remote_type=None, debug=None):
        CoordError.__init__(self, text)
        self.remote_type = remote_type
        self.debug = debug


# Only these classes are re-raised by name; anything else the daemon throws
# arrives as a RemoteError.

_remote = dict()

for _class in (DeadlineExceeded, FailedPrecondition, InvalidArgument,
               NotFound, PermissionDenied, Unauthenticated):
    _remote[_class.__name__] = _class


def from_remote(error: dict) -> CoordError:
    """ Build the exception described by the *error* dictionary of a
        response payload: ``{'type': ..., 'text': ..., 'debug': ...}``.
    """

    e_type = error.get('type')
    e_text = error.get('text', '')

    try:
        e_class = _remote[e_type]
    except KeyError:
        return RemoteError("%s: %s" % (e_type, e_text), e_type, error.get('debug'))

    return e_class(e_text)


def to_remote(exception: BaseException, debug: Optional[str] = None) -> dict:
    """ Inverse of :func:`from_remote`, used by the daemon. """

    error = dict()
    error['type'] = type(exception).__name__
    error['text'] = str(exception)
    if debug is not None:
        error['debug'] = debug

    return error


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

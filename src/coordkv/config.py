""" Client defaults. Every value here can be overridden with an environment
    variable; the environment is consulted on every call, so a change made
    before a client is constructed takes effect for that client.
"""

import os

from . import errors


default_address = 'localhost'
default_port = 2379
default_timeout = 120


def endpoint(default=None):
    """ Return the (address, port) tuple clients should connect to. The
        ``COORDKV_ENDPOINT`` environment variable takes precedence over the
        *default* argument, which in turn takes precedence over the module
        defaults. Either form is a string like ``host:port``.
    """

    try:
        found = os.environ['COORDKV_ENDPOINT']
    except KeyError:
        found = default

    if found is None or found == '':
        return (default_address, default_port)

    return parse_endpoint(found)



def parse_endpoint(text):
    """ Split a ``host:port`` string. A bare host uses the default port.
    """

    text = str(text).strip()

    if text.startswith('tcp://'):
        text = text[6:]

    if ':' in text:
        address, port = text.rsplit(':', 1)
    else:
        address = text
        port = default_port

    if address == '':
        address = default_address

    try:
        port = int(port)
    except ValueError:
        raise errors.ConfigurationError('invalid port in endpoint: ' + repr(text))

    if port <= 0 or port > 65535:
        raise errors.ConfigurationError('port out of range in endpoint: ' + repr(text))

    return (address, port)



def timeout():
    """ Return the default per-call timeout in seconds. The
        ``COORDKV_TIMEOUT`` environment variable overrides the built-in
        default of 120 seconds.
    """

    try:
        found = os.environ['COORDKV_TIMEOUT']
    except KeyError:
        return default_timeout

    try:
        found = float(found)
    except ValueError:
        raise errors.ConfigurationError('COORDKV_TIMEOUT is not a number: ' + repr(found))

    if found < 0:
        raise errors.ConfigurationError('COORDKV_TIMEOUT must not be negative')

    return found


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

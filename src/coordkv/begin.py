""" Implementation of the top-level :func:`connect` method. This is intended
    to be the principal entry point for users interacting with a coordkv
    daemon.
"""

from . import config
from .client import Client


def connect(endpoint=None, **kwargs):
    """ Return a new :class:`coordkv.Client`. The *endpoint* is a
        ``host:port`` string; if it is not specified the ``COORDKV_ENDPOINT``
        environment variable is used, falling back to ``localhost:2379``.
        Any additional keyword arguments, such as *namespace*, *user*,
        *password* and *timeout*, are passed through to the
        :class:`coordkv.Client` constructor.

        Clients are not cached; the underlying transport connection to a
        given endpoint is shared regardless.
    """

    if endpoint is None:
        address, port = config.endpoint()
    else:
        address, port = config.parse_endpoint(endpoint)

    return Client(address, port, **kwargs)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" The wire protocol shared by the coordkv client and daemon.

    Every message is a ZeroMQ multipart sequence::

        (version, id, type, payload)

    The *payload* is a JSON object; byte strings within it (keys, values,
    range boundaries, lock names) travel as base64 text. Requests are
    acknowledged immediately with an ACK, and answered with a REP carrying
    either the result fields or an ``error`` dictionary.
"""

from . import message
from . import request


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" Python client for a coordination key/value store, with namespaced key
    confinement, transactions, leases, and distributed locks; plus a
    single-node reference daemon implementing the same request protocol.
"""

# Utility components.

from . import json
from . import errors
from . import heartbeat

# Submodules used by multiple other components.

from . import protocol
from . import config
from . import namespace
from . import response

# Primary public-facing interfaces.

from . import begin
connect = begin.connect

from .client import Client
from .daemon import Daemon
from .version import version as __version__

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" Distributed mutual exclusion backed by a lease.

    Acquiring a lock creates a key ``<name>/<lease id>`` attached to the
    lease; the daemon holds the request until that key has the lowest
    create revision among all keys under ``<name>/``. Revoking or expiring
    the lease deletes the key, which releases the lock for the next waiter.
"""

import contextlib
import logging

from . import response
from .json import to_bytes

logger = logging.getLogger(__name__)


class LockCoordinator:
    """ Lock names are translated through the same
        :class:`coordkv.namespace.RequestTranslator` as every other key, so
        the same name in two different namespaces does not contend.
    """

    def __init__(self, session, translator):
        self.session = session
        self.translator = translator


    def lock(self, name, lease_id, timeout=None):
        """ Block until the lock *name* is held on behalf of *lease_id*, and
            return a :class:`coordkv.response.LockHandle`. If *timeout*
            seconds elapse first the request fails with
            :class:`coordkv.errors.DeadlineExceeded`, and no lock key is left
            behind.
        """

        fields = dict()
        fields['name'] = self.translator.prefix(name)
        fields['lease'] = int(lease_id)

        result = self.session.call('LOCK', fields, timeout)
        return response.LockHandle(result, lease_id)


    def unlock(self, key, timeout=None):
        """ Release a lock. The *key* is the :attr:`LockHandle.key` returned
            by :func:`lock`, used verbatim; it is already namespaced.
        """

        if isinstance(key, response.LockHandle):
            key = key.key

        fields = dict()
        fields['key'] = to_bytes(key)

        result = self.session.call('UNLOCK', fields, timeout)
        return response.Response(result)


    @contextlib.contextmanager
    def with_lock(self, name, lease_id, timeout=None):
        """ Context manager: acquire the lock, run the body of the ``with``
            statement, and release the lock on every way out of it. The
            *timeout* bounds the acquisition only; the release uses the
            session default. If the body raises, that exception is the one
            propagated; a failed release is logged rather than replacing it.

            ::

                with client.with_lock('resource', lease.id, timeout=5) as handle:
                    ...
        """

        handle = self.lock(name, lease_id, timeout)

        try:
            yield handle
        except BaseException:
            try:
                self.unlock(handle.key)
            except Exception as e:
                logger.warning("releasing lock %r failed: %s", handle.key, e)
            raise

        self.unlock(handle.key)


# end of class LockCoordinator


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

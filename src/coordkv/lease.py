""" Lease lifecycle: grant, revoke, time-to-live, and single keep-alive.

    Every method is a single deadline-bounded request. Failures, including
    :class:`coordkv.errors.NotFound` for a lease that has already expired,
    are raised to the caller as-is; keeping a lease alive on a schedule is
    the job of :mod:`coordkv.heartbeat` or of the caller.
"""

from . import response


class LeaseCoordinator:

    def __init__(self, session):
        self.session = session


    def grant(self, ttl, lease_id=0, timeout=None):
        """ Request a new lease that expires *ttl* seconds from now unless
            kept alive. A non-zero *lease_id* asks for that specific id.
        """

        fields = dict()
        fields['ttl'] = int(ttl)
        fields['id'] = int(lease_id)

        result = self.session.call('LEASE_GRANT', fields, timeout)
        return response.Lease(result)


    def revoke(self, lease_id, timeout=None):
        """ Destroy the lease immediately, along with every key attached to
            it; this releases any lock acquired with the lease.
        """

        fields = dict()
        fields['id'] = int(lease_id)

        result = self.session.call('LEASE_REVOKE', fields, timeout)
        return response.Response(result)


    def ttl(self, lease_id, keys=False, timeout=None):
        """ Query the remaining time on a lease. An unknown lease reports a
            ttl of -1. Set *keys* to True to also list the attached keys.
        """

        fields = dict()
        fields['id'] = int(lease_id)
        fields['keys'] = bool(keys)

        result = self.session.call('LEASE_TTL', fields, timeout)
        return response.LeaseTTL(result)


    def keep_alive_once(self, lease_id, timeout=None):
        """ Send one heartbeat, extending the lease back to its full TTL.
        """

        fields = dict()
        fields['id'] = int(lease_id)

        result = self.session.call('LEASE_KEEPALIVE', fields, timeout)
        return response.LeaseKeepAlive(result)


# end of class LeaseCoordinator


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

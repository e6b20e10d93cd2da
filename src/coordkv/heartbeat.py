""" Periodic lease keep-alive. The lease itself never renews on its own;
    :func:`start` runs a background thread that calls
    :func:`coordkv.lease.LeaseCoordinator.keep_alive_once` on a fixed
    cadence until told to stop, or until the first failure.

    ::

        lease = client.lease_grant(5)
        coordkv.heartbeat.start(client.leases, lease.id, 1, failed=report)
"""

import logging
import threading
import time
import weakref

logger = logging.getLogger(__name__)

active = dict()
active_lock = threading.Lock()


def period(leases, lease_id):
    """ Return the currently set keep-alive period for *lease_id* on the
        given :class:`coordkv.lease.LeaseCoordinator`. Returns None if no
        heartbeat is presently active for that lease.
    """

    key = (id(leases), lease_id)

    with active_lock:
        try:
            beat = active[key]
        except KeyError:
            return None

    return beat.interval



def start(leases, lease_id, period, failed=None):
    """ Keep *lease_id* alive by sending a keep-alive every *period* seconds.
        A dedicated background thread is used for each lease.

        If a heartbeat is already active for the lease, it is updated to use
        the newly requested period. A period of None or zero stops it.

        The first failed keep-alive, including the lease having expired or
        been revoked, stops the heartbeat; the exception is handed to
        *failed* as ``failed(lease_id, exception)``, or logged if no
        callback was given.
    """

    if period is None or period == 0:
        stop(leases, lease_id)
        return

    if period < 0:
        raise ValueError('heartbeat period must be positive')

    key = (id(leases), lease_id)

    with active_lock:
        beat = active.get(key)

        # A stopped heartbeat lingers here until its thread exits; it
        # cannot be revived, so replace it.

        if beat is None or beat.shutdown:
            beat = _Heartbeat(leases, lease_id, failed)
            active[key] = beat
        elif failed is not None:
            beat.failed = failed

    beat.period(period)



def stop(leases, lease_id):
    """ Discontinue the keep-alive for *lease_id*. The lease itself is not
        revoked; it will expire once its TTL elapses.
    """

    key = (id(leases), lease_id)

    with active_lock:
        try:
            beat = active[key]
        except KeyError:
            return

    beat.stop()



class _Heartbeat:
    """ Background thread to invoke the keep-alive requests. Only a weak
        reference to the coordinator is retained; if the coordinator goes
        away the heartbeat ends with it.
    """

    def __init__(self, leases, lease_id, failed=None):

        self.key = (id(leases), lease_id)
        self.lease_id = lease_id
        self.failed = failed

        self.interval = None
        self.reference = weakref.ref(leases)
        self.shutdown = False

        self.alarm = threading.Event()
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()


    def period(self, period):
        """ Update the keep-alive interval to *period* seconds.
        """

        self.interval = float(period)
        self.wake()


    def run(self):

        interval = 30
        next = time.monotonic()

        # Initial wait for someone to call self.period().

        while self.interval is None and self.shutdown == False:
            self.alarm.wait(1)

        while self.shutdown == False:
            begin = time.monotonic()

            if self.alarm.is_set():
                self.alarm.clear()

                # A new interval starts an entirely new cadence, beginning
                # one full interval from now.

                interval = self.interval
                next = begin + interval

                self.alarm.wait(interval)
                if self.shutdown or self.alarm.is_set():
                    continue

            leases = self.reference()

            if leases is None:
                # The coordinator is gone. No further calls are possible.
                break

            try:
                leases.keep_alive_once(self.lease_id, timeout=interval)
            except Exception as e:
                self._fail(e)
                break

            # Drop the strong reference before sleeping.
            leases = None

            next += interval
            delay = next - time.monotonic()

            if delay > 0:
                self.alarm.wait(delay)

        self.shutdown = True

        with active_lock:
            if active.get(self.key) is self:
                del active[self.key]


    def _fail(self, exception):

        failed = self.failed

        if failed is None:
            logger.error("keep-alive for lease %x failed: %s", self.lease_id, exception)
            return

        try:
            failed(self.lease_id, exception)
        except Exception:
            logger.exception("keep-alive failure callback raised an exception")


    def stop(self):
        self.shutdown = True
        self.wake()


    def wake(self):
        self.alarm.set()


# end of class _Heartbeat


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

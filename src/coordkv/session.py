""" The session layer: identity, token, and per-call deadlines. Every
    request issued by a :class:`coordkv.Client` passes through
    :func:`SessionManager.call`.
"""

import logging
import threading

from . import config
from . import errors
from . import protocol

logger = logging.getLogger(__name__)


class SessionManager:
    """ Hold the authentication state for a single client, and wrap every
        outgoing request with the current token and an effective timeout.

        The token is shared by every thread using the client; reads and
        writes of the token, user, password, and default timeout are
        serialized with a lock, so a call never observes a half-updated
        identity while :func:`authenticate` is running.
    """

    def __init__(self, address, port, timeout=None):

        self.address = address
        self.port = int(port)

        if timeout is None:
            timeout = config.timeout()

        self._lock = threading.Lock()
        self._timeout = float(timeout)
        self._token = None
        self._user = None
        self._password = None


    @property
    def token(self):
        with self._lock:
            return self._token


    @property
    def user(self):
        with self._lock:
            return self._user


    @property
    def password(self):
        with self._lock:
            return self._password


    @property
    def timeout(self):
        """ The default timeout, in seconds, for calls that do not specify
            their own.
        """

        with self._lock:
            return self._timeout


    @timeout.setter
    def timeout(self, timeout):

        timeout = float(timeout)

        if timeout < 0:
            raise errors.ConfigurationError('the default timeout must not be negative')

        with self._lock:
            self._timeout = timeout


    def call(self, type, fields=None, timeout=None):
        """ Send a request of the given *type* with the supplied payload
            *fields*, and return the response fields as a dictionary. The
            current token, if any, is attached. A *timeout* of None uses the
            session default; a timeout of zero or less fails immediately
            with :class:`coordkv.errors.DeadlineExceeded`.
        """

        if timeout is None:
            timeout = self.timeout

        if timeout <= 0:
            raise errors.DeadlineExceeded("%s: deadline already expired" % (type))

        if fields is None:
            fields = dict()

        token = self.token

        payload = protocol.message.Payload(**fields)
        payload.timeout = timeout
        payload.token = token

        request = protocol.message.Request(type, payload)

        try:
            response = protocol.request.send(self.address, self.port, request, timeout)
        except errors.DeadlineExceeded:
            logger.debug("%s timed out after %.3fs", type, timeout)
            raise

        if response.error:
            raise errors.from_remote(response.error)

        return response.fields()


    def authenticate(self, user, password, timeout=None):
        """ Exchange *user* and *password* for a token, and attach that token
            to all subsequent calls. This fails with
            :class:`coordkv.errors.FailedPrecondition` if auth is not enabled
            on the daemon. Calling it again refreshes the token.
        """

        fields = dict()
        fields['name'] = user
        fields['password'] = password

        response = self.call('AUTHENTICATE', fields, timeout)

        with self._lock:
            self._token = response['token']
            self._user = user
            self._password = password

        logger.debug("authenticated as %r", user)
        return response


    def auth_enable(self, timeout=None):

        self.call('AUTH_ENABLE', timeout=timeout)
        return True


    def auth_disable(self, timeout=None):
        """ Disable auth on the daemon. The daemon invalidates every token;
            the local token is cleared as well, so privileged calls after
            a later :func:`auth_enable` need a fresh :func:`authenticate`.
        """

        self.call('AUTH_DISABLE', timeout=timeout)

        with self._lock:
            self._token = None

        return True


# end of class SessionManager


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

""" The :class:`Client` is the single entry point for interacting with a
    coordkv daemon: key/value access, transactions, leases, locks, watches,
    authentication, and the administrative pass-through calls.
"""

from . import auth
from . import config
from . import errors
from . import response
from .json import to_bytes, unpack
from .lease import LeaseCoordinator
from .lock import LockCoordinator
from .namespace import lookup, RequestTranslator
from .session import SessionManager
from .txn import Transaction


ALARM_ACTION = {
    'get': 0,
    'activate': 1,
    'deactivate': 2,
}

ALARM_TYPE = {
    'none': 0,
    'nospace': 1,
    'corrupt': 2,
}


class Client:
    """ A connection to the daemon at *address* and *port*; when either is
        omitted the value from :func:`coordkv.config.endpoint` is used.

        If a *namespace* is given, every key and range boundary issued
        through this client is confined to keys beginning with it, lock names
        included. Keys in responses are not stripped; they still carry the
        namespace.

        If *user* and *password* are given the client authenticates
        immediately. *timeout* is the default per-call timeout in seconds;
        every method also accepts its own *timeout*.
    """

    def __init__(self, address=None, port=None, namespace=None, user=None, password=None, timeout=None):

        default_address, default_port = config.endpoint()

        if address is None:
            address = default_address

        if port is None:
            port = default_port

        self.address = address
        self.port = int(port)

        self.translator = RequestTranslator(namespace)
        self.session = SessionManager(self.address, self.port, timeout)
        self.leases = LeaseCoordinator(self.session)
        self.locks = LockCoordinator(self.session, self.translator)

        if user is not None and password is not None:
            self.authenticate(user, password)
        elif user is not None or password is not None:
            raise errors.ConfigurationError('both a user and a password are required to authenticate')


    def __repr__(self):
        return 'Client(%s:%d, namespace=%r)' % (self.address, self.port, self.namespace)


    @property
    def namespace(self):
        return self.translator.namespace


    @property
    def token(self):
        return self.session.token


    @property
    def user(self):
        return self.session.user


    @property
    def password(self):
        return self.session.password


    @property
    def timeout(self):
        return self.session.timeout


    @timeout.setter
    def timeout(self, timeout):
        self.session.timeout = timeout


    # Key/value operations.

    def get(self, key, range_end=None, sort_order=None, sort_target=None,
            count_only=None, keys_only=None, limit=None, serializable=None, timeout=None):
        """ Retrieve *key*, or every key in [*key*, *range_end*) if a
            *range_end* is given. A *range_end* of ``'\\0'`` means every key
            greater than or equal to *key*; within a namespace that is every
            key in the namespace. *sort_order* is one of 'none', 'ascend',
            'descend'; *sort_target* one of 'key', 'version', 'create',
            'mod', 'value'. Returns a :class:`coordkv.response.RangeResponse`.
        """

        fields = self.translator.build_get(key, range_end, sort_order, sort_target,
                                           count_only, keys_only, limit, serializable)

        result = self.session.call('RANGE', fields, timeout)
        return response.RangeResponse(result)


    def put(self, key, value, lease=None, prev_kv=None, timeout=None):
        """ Set *key* to *value*, optionally attached to a *lease* id.
        """

        fields = self.translator.build_put(key, value, lease, prev_kv)

        result = self.session.call('PUT', fields, timeout)
        return response.PutResponse(result)


    def delete(self, key, range_end='', prev_kv=None, timeout=None):
        """ Delete *key*, or every key in [*key*, *range_end*). The
            :attr:`deleted` attribute of the response is the number of keys
            removed.
        """

        fields = self.translator.build_delete(key, range_end, prev_kv)

        result = self.session.call('DELETE_RANGE', fields, timeout)
        return response.DeleteRangeResponse(result)


    def txn(self):
        """ Return an empty :class:`coordkv.txn.Transaction` bound to this
            client; call its :func:`commit` method to send it.
        """

        return Transaction(self.translator, self.session)


    def transaction(self, block, timeout=None):
        """ Build a transaction by calling *block* with a fresh
            :class:`coordkv.txn.Transaction`, then send it. Returns the
            :class:`coordkv.response.TxnResponse`.
        """

        txn = self.txn()
        block(txn)
        return txn.commit(timeout)


    def watch(self, key, range_end=None, start_revision=None, prev_kv=None, timeout=None):
        """ Return the changes to *key* (or the range) at or after
            *start_revision* as a :class:`coordkv.response.WatchResponse`.
            Without a *start_revision*, block until the next change. Raises
            :class:`coordkv.errors.DeadlineExceeded` if nothing changes in
            time.
        """

        fields = self.translator.build_watch(key, range_end, start_revision, prev_kv)

        result = self.session.call('WATCH', fields, timeout)
        return response.WatchResponse(result)


    # Leases.

    def lease_grant(self, ttl, lease_id=0, timeout=None):
        return self.leases.grant(ttl, lease_id, timeout)


    def lease_revoke(self, lease_id, timeout=None):
        return self.leases.revoke(lease_id, timeout)


    def lease_ttl(self, lease_id, keys=False, timeout=None):
        return self.leases.ttl(lease_id, keys, timeout)


    def lease_keep_alive_once(self, lease_id, timeout=None):
        return self.leases.keep_alive_once(lease_id, timeout)


    # Locks.

    def lock(self, name, lease_id, timeout=None):
        return self.locks.lock(name, lease_id, timeout)


    def unlock(self, key, timeout=None):
        return self.locks.unlock(key, timeout)


    def with_lock(self, name, lease_id, timeout=None):
        """ Context manager holding the lock *name* for the duration of a
            ``with`` block; see :func:`coordkv.lock.LockCoordinator.with_lock`.
        """

        return self.locks.with_lock(name, lease_id, timeout)


    # Authentication.

    def authenticate(self, user, password, timeout=None):
        self.session.authenticate(user, password, timeout)
        return True


    def auth_enable(self, timeout=None):
        return self.session.auth_enable(timeout)


    def auth_disable(self, timeout=None):
        return self.session.auth_disable(timeout)


    # Users.

    def user_add(self, user, password, timeout=None):
        fields = {'name': user, 'password': password}
        return response.Response(self.session.call('USER_ADD', fields, timeout))


    def user_get(self, user, timeout=None):
        fields = {'name': user}
        return response.Response(self.session.call('USER_GET', fields, timeout))


    def user_delete(self, user, timeout=None):
        fields = {'name': user}
        return response.Response(self.session.call('USER_DELETE', fields, timeout))


    def user_change_password(self, user, new_password, timeout=None):
        fields = {'name': user, 'password': new_password}
        return response.Response(self.session.call('USER_CHANGE_PASSWORD', fields, timeout))


    def user_list(self, timeout=None):
        return response.Response(self.session.call('USER_LIST', None, timeout))


    def user_grant_role(self, user, role, timeout=None):
        fields = {'user': user, 'role': role}
        return response.Response(self.session.call('USER_GRANT_ROLE', fields, timeout))


    def user_revoke_role(self, user, role, timeout=None):
        fields = {'name': user, 'role': role}
        return response.Response(self.session.call('USER_REVOKE_ROLE', fields, timeout))


    # Roles.

    def role_add(self, name, timeout=None):
        fields = {'name': name}
        return response.Response(self.session.call('ROLE_ADD', fields, timeout))


    def role_get(self, name, timeout=None):
        """ The :attr:`perm` attribute of the response lists the permissions
            granted to the role, with keys and range ends as bytes.
        """

        result = self.session.call('ROLE_GET', {'name': name}, timeout)
        reply = response.Response(result)

        permissions = list()
        for permission in result.get('perm', ()):
            permission = dict(permission)
            permission['key'] = unpack(permission.get('key'))
            permission['range_end'] = unpack(permission.get('range_end'))
            permissions.append(permission)

        reply.perm = permissions
        return reply


    def role_delete(self, name, timeout=None):
        fields = {'role': name}
        return response.Response(self.session.call('ROLE_DELETE', fields, timeout))


    def role_list(self, timeout=None):
        return response.Response(self.session.call('ROLE_LIST', None, timeout))


    def role_grant_permission(self, name, permission, key, range_end='', timeout=None):
        """ Grant *permission* ('read', 'write', or 'readwrite') on *key*, or
            on the range [*key*, *range_end*), to the role *name*. Permission
            keys are store keys; they are not translated by the namespace.
        """

        perm = dict()
        perm['type'] = lookup(auth.PERMISSIONS, permission, 'permission')
        perm['key'] = to_bytes(key)
        perm['range_end'] = to_bytes(range_end)

        fields = {'name': name, 'perm': perm}
        return response.Response(self.session.call('ROLE_GRANT_PERMISSION', fields, timeout))


    def role_revoke_permission(self, name, permission, key, range_end='', timeout=None):

        # The permission type is validated but not sent; a role holds at
        # most one permission per key range.

        lookup(auth.PERMISSIONS, permission, 'permission')

        fields = dict()
        fields['role'] = name
        fields['key'] = to_bytes(key)
        fields['range_end'] = to_bytes(range_end)

        return response.Response(self.session.call('ROLE_REVOKE_PERMISSION', fields, timeout))


    # Maintenance.

    def status(self, timeout=None):
        return response.Response(self.session.call('STATUS', None, timeout))


    def version(self, timeout=None):
        return self.status(timeout).version


    def db_size(self, timeout=None):
        return self.status(timeout).db_size


    def leader_id(self, timeout=None):
        return self.status(timeout).leader


    def member_list(self, timeout=None):
        return response.Response(self.session.call('MEMBER_LIST', None, timeout))


    def _alarm(self, action, member_id, alarm, timeout):

        fields = dict()
        fields['action'] = lookup(ALARM_ACTION, action, 'alarm action')
        fields['member_id'] = int(member_id)
        fields['alarm'] = lookup(ALARM_TYPE, alarm, 'alarm type')

        return response.Response(self.session.call('ALARM', fields, timeout))


    def alarm_list(self, timeout=None):
        return self._alarm('get', 0, 'none', timeout)


    def alarm_activate(self, alarm, member_id=0, timeout=None):
        return self._alarm('activate', member_id, alarm, timeout)


    def alarm_deactivate(self, alarm='none', member_id=0, timeout=None):
        """ Clear alarms. With the default arguments every alarm on every
            member is cleared.
        """

        return self._alarm('deactivate', member_id, alarm, timeout)


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

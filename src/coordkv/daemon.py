""" The reference coordkv daemon: a single-node, in-memory store answering
    the coordkv request protocol. It is the remote end every
    :class:`coordkv.Client` talks to, and the foil for the test suite.

    Run it from the command line with ``coordkvd``, or embed it::

        daemon = coordkv.daemon.Daemon(address='127.0.0.1')
        client = coordkv.Client('127.0.0.1', daemon.port)
"""

import argparse
import logging
import random
import sys
import threading
import time

from . import auth
from . import config
from . import errors
from . import protocol
from . import store
from .json import unpack
from .version import version

logger = logging.getLogger(__name__)

READ = auth.READ
WRITE = auth.WRITE


class Daemon:
    """ The :class:`Daemon` owns the keyspace (a :class:`coordkv.store.Store`),
        the auth state (a :class:`coordkv.auth.Authority`), the request
        server, and a background thread expiring leases.

        If *port* is None the first available port in the default range is
        used; the chosen port is available as :attr:`port`.
    """

    sweep_interval = 0.1

    def __init__(self, address=None, port=None, avoid=None, name='default'):

        self.name = name
        self.member_id = random.getrandbits(63)
        self.alarms = list()
        self.alarms_lock = threading.Lock()

        self.store = store.Store()
        self.auth = auth.Authority()

        self.rep = RequestServer(self, hostname=address, port=port, avoid=avoid)
        self.address = self.rep.hostname
        self.port = self.rep.port

        self.shutdown = threading.Event()
        self.sweeper = threading.Thread(target=self._sweep)
        self.sweeper.daemon = True
        self.sweeper.start()

        logger.info("%s listening on %s:%d", self.name, self.address, self.port)


    def _sweep(self):

        while self.shutdown.wait(self.sweep_interval) == False:
            try:
                self.store.expire()
            except Exception:
                logger.exception('lease expiration failed')


    def reset(self):
        """ Return the daemon to its initial state: no keys, no leases, no
            users or roles, auth disabled, no alarms.
        """

        self.store.reset()
        self.auth.reset()

        with self.alarms_lock:
            self.alarms = list()


    def run(self):
        """ Block until :func:`stop` is called.
        """

        while self.shutdown.wait(1) == False:
            pass


    def stop(self):

        self.shutdown.set()
        self.rep.stop()
        logger.info("%s stopped", self.name)


# end of class Daemon



class RequestServer(protocol.request.Server):
    """ Dispatch each incoming request to the ``req_<type>`` method matching
        its type, after checking the request's token if auth is enabled.
    """

    # Requests that wait on the keyspace until their deadline.
    blocking = set(('LOCK', 'WATCH'))

    # Requests that never require a token.
    anonymous = set(('AUTHENTICATE', 'STATUS', 'MEMBER_LIST'))

    # Requests that require the root role while auth is enabled.
    privileged = set((
        'AUTH_ENABLE', 'AUTH_DISABLE',
        'USER_ADD', 'USER_GET', 'USER_DELETE', 'USER_CHANGE_PASSWORD',
        'USER_LIST', 'USER_GRANT_ROLE', 'USER_REVOKE_ROLE',
        'ROLE_ADD', 'ROLE_GET', 'ROLE_DELETE', 'ROLE_LIST',
        'ROLE_GRANT_PERMISSION', 'ROLE_REVOKE_PERMISSION',
    ))

    def __init__(self, daemon, *args, **kwargs):
        protocol.request.Server.__init__(self, *args, **kwargs)
        self.daemon = daemon


    def req_handler(self, request):
        """ Inspect the incoming request type and decide how a response
            will be generated.
        """

        type = request.type
        payload = request.payload

        if payload is None:
            payload = protocol.message.Payload()

        if type in self.anonymous:
            user = None
        else:
            user = self.daemon.auth.identify(payload.get('token'))

        if type in self.privileged:
            self.daemon.auth.require_root(user)

        try:
            method = getattr(self, 'req_' + type.lower())
        except AttributeError:
            raise errors.InvalidArgument('unhandled request type: ' + type)

        fields = method(payload, user)
        return protocol.message.Payload(**fields)


    def deadline(self, payload):
        """ Convert the client's remaining timeout into a local monotonic
            deadline, or None if the client did not send one.
        """

        timeout = payload.get('timeout')

        if timeout is None:
            return None

        return time.monotonic() + float(timeout)


    # Key/value requests.

    def _range_request(self, fields):

        request = dict(fields)
        request['key'] = unpack(fields.get('key'))
        request['range_end'] = unpack(fields.get('range_end'))
        return request


    def req_range(self, payload, user):

        request = self._range_request(payload.fields())
        self.daemon.auth.check(user, request['key'], request['range_end'], READ)
        return self.daemon.store.range(request)


    def req_put(self, payload, user):

        key = unpack(payload.get('key'))
        value = unpack(payload.get('value'))
        lease = payload.get('lease') or 0

        self.daemon.auth.check(user, key, b'', WRITE)
        return self.daemon.store.put(key, value, lease, payload.get('prev_kv', False))


    def req_delete_range(self, payload, user):

        key = unpack(payload.get('key'))
        range_end = unpack(payload.get('range_end'))

        self.daemon.auth.check(user, key, range_end, WRITE)
        return self.daemon.store.delete_range(key, range_end, payload.get('prev_kv', False))


    def _txn_operations(self, operations, user):

        decoded = list()

        for operation in operations:
            if 'request_range' in operation:
                request = self._range_request(operation['request_range'])
                self.daemon.auth.check(user, request['key'], request['range_end'], READ)
                decoded.append({'request_range': request})

            elif 'request_put' in operation:
                request = dict(operation['request_put'])
                request['key'] = unpack(request.get('key'))
                request['value'] = unpack(request.get('value'))
                request['lease'] = request.get('lease') or 0
                self.daemon.auth.check(user, request['key'], b'', WRITE)
                decoded.append({'request_put': request})

            elif 'request_delete_range' in operation:
                request = self._range_request(operation['request_delete_range'])
                self.daemon.auth.check(user, request['key'], request['range_end'], WRITE)
                decoded.append({'request_delete_range': request})

            else:
                raise errors.InvalidArgument('unrecognized transaction operation: ' + repr(operation))

        return decoded


    def req_txn(self, payload, user):

        compare = list()
        for clause in payload.get('compare', ()):
            clause = dict(clause)
            clause['key'] = unpack(clause.get('key'))
            if 'value' in clause:
                clause['value'] = unpack(clause['value'])
            self.daemon.auth.check(user, clause['key'], b'', READ)
            compare.append(clause)

        success = self._txn_operations(payload.get('success', ()), user)
        failure = self._txn_operations(payload.get('failure', ()), user)

        return self.daemon.store.txn(compare, success, failure)


    # Leases.

    def req_lease_grant(self, payload, user):
        return self.daemon.store.lease_grant(int(payload.get('ttl', 0)), int(payload.get('id', 0)))


    def req_lease_revoke(self, payload, user):
        return self.daemon.store.lease_revoke(int(payload.get('id', 0)))


    def req_lease_ttl(self, payload, user):
        return self.daemon.store.lease_ttl(int(payload.get('id', 0)), payload.get('keys', False))


    def req_lease_keepalive(self, payload, user):
        return self.daemon.store.lease_keepalive(int(payload.get('id', 0)))


    # Locks and watches.

    def req_lock(self, payload, user):

        name = unpack(payload.get('name'))
        lease = int(payload.get('lease', 0))

        if name == b'':
            raise errors.InvalidArgument('lock name is empty')

        self.daemon.auth.check(user, name, b'', WRITE)
        return self.daemon.store.lock(name, lease, self.deadline(payload))


    def req_unlock(self, payload, user):

        key = unpack(payload.get('key'))

        self.daemon.auth.check(user, key, b'', WRITE)
        return self.daemon.store.unlock(key)


    def req_watch(self, payload, user):

        key = unpack(payload.get('key'))
        range_end = unpack(payload.get('range_end'))
        start_revision = int(payload.get('start_revision', 0))
        prev_kv = payload.get('prev_kv', False)

        self.daemon.auth.check(user, key, range_end, READ)
        return self.daemon.store.watch(key, range_end, start_revision, prev_kv, self.deadline(payload))


    # Authentication, users, and roles.

    def _header(self, **fields):
        fields['header'] = self.daemon.store.header()
        return fields


    def req_authenticate(self, payload, user):
        token = self.daemon.auth.authenticate(payload.get('name'), payload.get('password', ''))
        return self._header(token=token)


    def req_auth_enable(self, payload, user):
        self.daemon.auth.enable()
        return self._header()


    def req_auth_disable(self, payload, user):
        self.daemon.auth.disable()
        return self._header()


    def req_user_add(self, payload, user):
        self.daemon.auth.user_add(payload.get('name'), payload.get('password', ''))
        return self._header()


    def req_user_get(self, payload, user):
        roles = self.daemon.auth.user_get(payload.get('name'))
        return self._header(roles=roles)


    def req_user_delete(self, payload, user):
        self.daemon.auth.user_delete(payload.get('name'))
        return self._header()


    def req_user_change_password(self, payload, user):
        self.daemon.auth.user_change_password(payload.get('name'), payload.get('password', ''))
        return self._header()


    def req_user_list(self, payload, user):
        return self._header(users=self.daemon.auth.user_list())


    def req_user_grant_role(self, payload, user):
        self.daemon.auth.user_grant_role(payload.get('user'), payload.get('role'))
        return self._header()


    def req_user_revoke_role(self, payload, user):
        self.daemon.auth.user_revoke_role(payload.get('name'), payload.get('role'))
        return self._header()


    def req_role_add(self, payload, user):
        self.daemon.auth.role_add(payload.get('name'))
        return self._header()


    def req_role_get(self, payload, user):

        permissions = list()
        for permission in self.daemon.auth.role_get(payload.get('name')):
            permissions.append(dict(permission))

        return self._header(perm=permissions)


    def req_role_delete(self, payload, user):
        self.daemon.auth.role_delete(payload.get('role'))
        return self._header()


    def req_role_list(self, payload, user):
        return self._header(roles=self.daemon.auth.role_list())


    def req_role_grant_permission(self, payload, user):

        permission = payload.get('perm', {})
        type = permission.get('type')
        key = unpack(permission.get('key'))
        range_end = unpack(permission.get('range_end'))

        self.daemon.auth.role_grant_permission(payload.get('name'), type, key, range_end)
        return self._header()


    def req_role_revoke_permission(self, payload, user):

        key = unpack(payload.get('key'))
        range_end = unpack(payload.get('range_end'))

        self.daemon.auth.role_revoke_permission(payload.get('role'), key, range_end)
        return self._header()


    # Maintenance.

    def req_status(self, payload, user):

        fields = dict()
        fields['version'] = version
        fields['db_size'] = self.daemon.store.size()
        fields['leader'] = self.daemon.member_id
        fields['raft_index'] = self.daemon.store.revision
        return self._header(**fields)


    def req_member_list(self, payload, user):

        member = dict()
        member['id'] = self.daemon.member_id
        member['name'] = self.daemon.name
        member['client_urls'] = ['tcp://%s:%d' % (self.daemon.address, self.daemon.port)]
        member['peer_urls'] = []

        return self._header(members=[member])


    def req_alarm(self, payload, user):
        """ Action 0 lists alarms, 1 activates *alarm* for *member_id*, 2
            deactivates it. Deactivating alarm type 0 clears every alarm.
        """

        action = int(payload.get('action', 0))
        member_id = int(payload.get('member_id', 0))
        alarm = int(payload.get('alarm', 0))

        if action != 0:
            self.daemon.auth.require_root(user)

        with self.daemon.alarms_lock:
            if action == 1:
                if alarm == 0:
                    raise errors.InvalidArgument('cannot activate alarm type NONE')

                entry = {'member_id': member_id or self.daemon.member_id, 'alarm': alarm}
                if entry not in self.daemon.alarms:
                    self.daemon.alarms.append(entry)

            elif action == 2:
                kept = list()
                for entry in self.daemon.alarms:
                    if alarm != 0 and entry['alarm'] != alarm:
                        kept.append(entry)
                    elif member_id != 0 and entry['member_id'] != member_id:
                        kept.append(entry)
                self.daemon.alarms = kept

            elif action != 0:
                raise errors.InvalidArgument('invalid alarm action: ' + repr(action))

            alarms = [dict(entry) for entry in self.daemon.alarms]

        return self._header(alarms=alarms)


# end of class RequestServer



def main(argv=None):

    parser = argparse.ArgumentParser(description='Run a single-node coordkv daemon.')
    parser.add_argument('--address', default=None, help='interface to listen on (default: all)')
    parser.add_argument('--port', type=int, default=None, help='port to listen on (default: %d)' % (config.default_port))
    parser.add_argument('--name', default='default', help='member name reported by MEMBER_LIST')
    parser.add_argument('--verbose', '-v', action='store_true', help='enable debug logging')

    arguments = parser.parse_args(argv)

    if arguments.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    port = arguments.port
    if port is None:
        port = config.default_port

    try:
        daemon = Daemon(arguments.address, port, name=arguments.name)
    except errors.TransportError as e:
        logger.error("cannot start: %s", e)
        return 1

    try:
        daemon.run()
    except KeyboardInterrupt:
        pass
    finally:
        daemon.stop()

    return 0


if __name__ == '__main__':
    sys.exit(main())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

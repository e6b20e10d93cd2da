""" Users, roles, permissions, and tokens for the reference daemon.

    The ``root`` role always exists and grants every permission. Auth can
    only be enabled once a ``root`` user holding the ``root`` role exists;
    while auth is enabled every request other than authentication itself
    must carry a valid token, and administrative requests require root.
"""

import hashlib
import hmac
import itertools
import os
import threading
import uuid

from . import errors
from .store import in_range, SENTINEL

ROOT = 'root'

READ = 0
WRITE = 1
READWRITE = 2

PERMISSIONS = {
    'read': READ,
    'write': WRITE,
    'readwrite': READWRITE,
}


def hash_password(password, salt=None):

    if salt is None:
        salt = os.urandom(16)

    digest = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, 10000)
    return (salt, digest)



def covers(permission, key, range_end):
    """ Return True if the granted *permission* range includes every key in
        the requested range [*key*, *range_end*).
    """

    granted_key = permission['key']
    granted_end = permission['range_end']

    if range_end == b'':
        return in_range(key, granted_key, granted_end)

    if granted_end == b'':
        return False

    if key < granted_key:
        return False

    if granted_end == SENTINEL:
        return True

    if range_end == SENTINEL:
        return False

    return range_end <= granted_end



class Authority:

    def __init__(self):

        self._lock = threading.Lock()
        self.reset()


    def reset(self):

        with self._lock:
            self.enabled = False
            self.users = dict()
            self.roles = dict()
            self.roles[ROOT] = list()
            self.tokens = dict()
            self._token_index = itertools.count(1)


    # Token handling.

    def authenticate(self, name, password):

        with self._lock:
            if self.enabled == False:
                raise errors.FailedPrecondition('authentication is not enabled')

            try:
                user = self.users[name]
            except KeyError:
                raise errors.InvalidArgument('authentication failed, invalid user ID or password')

            salt, digest = user['password']
            salt, attempt = hash_password(password, salt)

            if hmac.compare_digest(digest, attempt) == False:
                raise errors.InvalidArgument('authentication failed, invalid user ID or password')

            token = '%s.%d' % (uuid.uuid4().hex, next(self._token_index))
            self.tokens[token] = name
            return token


    def identify(self, token):
        """ Return the user name associated with *token*. Returns None if
            auth is disabled; raises Unauthenticated if auth is enabled and
            the token is missing or unknown.
        """

        with self._lock:
            if self.enabled == False:
                return None

            if token is None or token == '':
                raise errors.Unauthenticated('user name is empty')

            try:
                return self.tokens[token]
            except KeyError:
                raise errors.Unauthenticated('invalid auth token')


    def is_root(self, name):

        with self._lock:
            try:
                user = self.users[name]
            except KeyError:
                return False

            return ROOT in user['roles']


    def require_root(self, name):
        """ Raise PermissionDenied unless auth is disabled (*name* is None)
            or *name* holds the root role.
        """

        if name is None:
            return

        if self.is_root(name) == False:
            raise errors.PermissionDenied('permission denied')


    def check(self, name, key, range_end, need):
        """ Raise PermissionDenied unless *name* may perform a *need* (READ
            or WRITE) operation on the range [*key*, *range_end*).
        """

        if name is None:
            return

        with self._lock:
            try:
                user = self.users[name]
            except KeyError:
                raise errors.PermissionDenied('permission denied')

            for role in user['roles']:
                if role == ROOT:
                    return

                for permission in self.roles.get(role, ()):
                    type = permission['type']
                    if type != READWRITE and type != need:
                        continue
                    if covers(permission, key, range_end):
                        return

        raise errors.PermissionDenied('permission denied')


    def enable(self):

        with self._lock:
            if self.enabled:
                return

            try:
                root = self.users[ROOT]
            except KeyError:
                raise errors.FailedPrecondition('root user does not exist')

            if ROOT not in root['roles']:
                raise errors.FailedPrecondition('root user does not have root role')

            self.enabled = True


    def disable(self):

        with self._lock:
            self.enabled = False
            self.tokens.clear()


    # Users.

    def _user(self, name):

        try:
            return self.users[name]
        except KeyError:
            raise errors.FailedPrecondition('user name not found')


    def _role(self, name):

        try:
            return self.roles[name]
        except KeyError:
            raise errors.FailedPrecondition('role name not found')


    def user_add(self, name, password):

        if name is None or name == '':
            raise errors.InvalidArgument('user name is empty')

        with self._lock:
            if name in self.users:
                raise errors.FailedPrecondition('user name already exists')

            user = dict()
            user['password'] = hash_password(password)
            user['roles'] = set()
            self.users[name] = user


    def user_get(self, name):

        with self._lock:
            user = self._user(name)
            return sorted(user['roles'])


    def user_delete(self, name):

        with self._lock:
            self._user(name)

            if self.enabled and name == ROOT:
                raise errors.FailedPrecondition('invalid auth management, cannot delete root while auth is enabled')

            del self.users[name]

            for token, owner in list(self.tokens.items()):
                if owner == name:
                    del self.tokens[token]


    def user_change_password(self, name, password):

        with self._lock:
            user = self._user(name)
            user['password'] = hash_password(password)


    def user_list(self):

        with self._lock:
            return sorted(self.users)


    def user_grant_role(self, name, role):

        with self._lock:
            user = self._user(name)
            self._role(role)
            user['roles'].add(role)


    def user_revoke_role(self, name, role):

        with self._lock:
            user = self._user(name)

            if role not in user['roles']:
                raise errors.FailedPrecondition('role is not granted to the user')

            if self.enabled and name == ROOT and role == ROOT:
                raise errors.FailedPrecondition('invalid auth management, cannot revoke root from root while auth is enabled')

            user['roles'].discard(role)


    # Roles.

    def role_add(self, name):

        if name is None or name == '':
            raise errors.InvalidArgument('role name is empty')

        with self._lock:
            if name in self.roles:
                raise errors.FailedPrecondition('role name already exists')

            self.roles[name] = list()


    def role_get(self, name):

        with self._lock:
            return list(self._role(name))


    def role_delete(self, name):

        with self._lock:
            self._role(name)

            if name == ROOT:
                raise errors.FailedPrecondition('the root role cannot be deleted')

            del self.roles[name]

            for user in self.users.values():
                user['roles'].discard(name)


    def role_list(self):

        with self._lock:
            return sorted(self.roles)


    def role_grant_permission(self, name, type, key, range_end=b''):

        if type not in (READ, WRITE, READWRITE):
            raise errors.InvalidArgument('invalid permission type: ' + repr(type))

        with self._lock:
            permissions = self._role(name)

            for permission in permissions:
                if permission['key'] == key and permission['range_end'] == range_end:
                    permission['type'] = type
                    return

            permission = dict()
            permission['type'] = type
            permission['key'] = key
            permission['range_end'] = range_end
            permissions.append(permission)


    def role_revoke_permission(self, name, key, range_end=b''):

        with self._lock:
            permissions = self._role(name)

            for permission in permissions:
                if permission['key'] == key and permission['range_end'] == range_end:
                    permissions.remove(permission)
                    return

        raise errors.FailedPrecondition('permission is not granted to the role')


# end of class Authority


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

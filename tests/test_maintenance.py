import coordkv
import pytest


def test_users(client):

    client.user_add('alice', 'alicepw')
    client.user_add('bob', 'bobpw')

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.user_add('alice', 'again')

    with pytest.raises(coordkv.errors.InvalidArgument):
        client.user_add('', 'password')

    assert client.user_list().users == ['alice', 'bob']

    client.role_add('editors')
    client.user_grant_role('alice', 'editors')
    assert client.user_get('alice').roles == ['editors']

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.user_grant_role('alice', 'nonexistent')

    client.user_revoke_role('alice', 'editors')
    assert client.user_get('alice').roles == []

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.user_revoke_role('alice', 'editors')

    client.user_delete('bob')
    assert client.user_list().users == ['alice']

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.user_get('bob')


def test_roles(client):

    assert client.role_list().roles == ['root']

    client.role_add('readers')
    assert client.role_list().roles == ['readers', 'root']

    client.role_grant_permission('readers', 'read', 'public/', 'public0')
    client.role_grant_permission('readers', 'readwrite', 'scratch')

    permissions = client.role_get('readers').perm
    assert len(permissions) == 2

    assert permissions[0]['type'] == 0
    assert permissions[0]['key'] == b'public/'
    assert permissions[0]['range_end'] == b'public0'

    assert permissions[1]['type'] == 2
    assert permissions[1]['key'] == b'scratch'
    assert permissions[1]['range_end'] == b''

    client.role_revoke_permission('readers', 'read', 'public/', 'public0')
    assert len(client.role_get('readers').perm) == 1

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.role_revoke_permission('readers', 'read', 'public/', 'public0')

    with pytest.raises(ValueError):
        client.role_grant_permission('readers', 'execute', 'key')

    client.role_delete('readers')
    assert client.role_list().roles == ['root']

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.role_delete('root')

    with pytest.raises(coordkv.errors.FailedPrecondition):
        client.role_get('readers')


def test_status(client, daemon):

    assert client.version() == coordkv.__version__
    assert client.leader_id() == daemon.member_id

    empty = client.db_size()
    client.put('key', 'value')
    assert client.db_size() == empty + len(b'key') + len(b'value')

    status = client.status()
    assert status.raft_index == status.header.revision


def test_member_list(client, daemon):

    members = client.member_list().members
    assert len(members) == 1
    assert members[0]['id'] == daemon.member_id
    assert members[0]['name'] == daemon.name


def test_alarms(client, daemon):

    assert client.alarm_list().alarms == []

    client.alarm_activate('nospace')
    alarms = client.alarm_list().alarms
    assert alarms == [{'member_id': daemon.member_id, 'alarm': 1}]

    client.alarm_activate('corrupt')
    assert len(client.alarm_list().alarms) == 2

    client.alarm_deactivate('nospace', daemon.member_id)
    assert client.alarm_list().alarms == [{'member_id': daemon.member_id, 'alarm': 2}]

    client.alarm_deactivate()
    assert client.alarm_list().alarms == []

    with pytest.raises(ValueError):
        client.alarm_activate('fire')

    with pytest.raises(coordkv.errors.InvalidArgument):
        client.alarm_activate('none')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

import coordkv
import pytest


def test_value_compare(client):

    client.put('config', 'old')

    txn = client.txn()
    txn.compare = [txn.value('config', 'equal', 'old')]
    txn.success = [txn.put('config', 'new')]
    txn.failure = [txn.get('config')]

    response = txn.commit()
    assert response.succeeded == True
    assert len(response.responses) == 1
    assert isinstance(response.responses[0], coordkv.response.PutResponse)

    assert client.get('config').kvs[0].value == b'new'


    # The same transaction a second time fails, and runs the failure branch.

    response = txn.commit()
    assert response.succeeded == False
    assert isinstance(response.responses[0], coordkv.response.RangeResponse)
    assert response.responses[0].kvs[0].value == b'new'


def test_exactly_one_branch(client):

    def branches(txn):
        txn.compare = [txn.value('flag', 'equal', 'on')]
        txn.success = [txn.put('success', 'ran')]
        txn.failure = [txn.put('failure', 'ran')]

    client.put('flag', 'off')
    assert client.transaction(branches).succeeded == False
    assert client.get('success').count == 0
    assert client.get('failure').count == 1

    client.delete('failure')

    client.put('flag', 'on')
    assert client.transaction(branches).succeeded == True
    assert client.get('success').count == 1
    assert client.get('failure').count == 0


def test_create_if_absent(client):

    def create(txn):
        txn.compare = [txn.version('key', 'equal', 0)]
        txn.success = [txn.put('key', 'created')]

    response = client.transaction(create)
    assert response.succeeded == True

    response = client.transaction(create)
    assert response.succeeded == False
    assert response.responses == []

    kv = client.get('key').kvs[0]
    assert kv.value == b'created'
    assert kv.version == 1


def test_revision_compares(client):

    created = client.put('key', 'one')
    modified = client.put('key', 'two')

    create_revision = created.header.revision
    mod_revision = modified.header.revision

    def check(txn):
        txn.compare = [
            txn.create_revision('key', 'equal', create_revision),
            txn.mod_revision('key', 'equal', mod_revision),
            txn.version('key', 'greater', 1),
            txn.mod_revision('key', 'not_equal', create_revision),
        ]

    assert client.transaction(check).succeeded == True

    def check(txn):
        txn.compare = [
            txn.create_revision('key', 'equal', create_revision),
            txn.mod_revision('key', 'less', mod_revision),
        ]

    assert client.transaction(check).succeeded == False


def test_lease_compare(client):

    lease = client.lease_grant(10)
    client.put('leased', 'value', lease=lease.id)
    client.put('unleased', 'value')

    def check(txn):
        txn.compare = [
            txn.lease('leased', 'equal', lease.id),
            txn.lease('unleased', 'equal', 0),
        ]

    assert client.transaction(check).succeeded == True


def test_single_revision(client):

    before = client.put('a', 'before').header.revision

    def write(txn):
        txn.success = [txn.put('a', '1'), txn.put('b', '2'), txn.delete('c')]

    response = client.transaction(write)
    assert response.succeeded == True
    assert response.header.revision == before + 1

    assert client.get('a').kvs[0].mod_revision == before + 1
    assert client.get('b').kvs[0].mod_revision == before + 1


def test_reads_observe_writes(client):

    def write(txn):
        txn.success = [
            txn.put('a', '1'),
            txn.get('a'),
            txn.delete('a'),
            txn.get('a'),
        ]

    response = client.transaction(write)

    assert response.responses[1].kvs[0].value == b'1'
    assert response.responses[2].deleted == 1
    assert response.responses[3].count == 0


def test_unknown_lease_applies_nothing(client):

    def write(txn):
        txn.success = [txn.put('a', '1'), txn.put('b', '2', lease=0x1234)]

    with pytest.raises(coordkv.errors.NotFound):
        client.transaction(write)

    assert client.get('a').count == 0


def test_empty_transaction(client):

    response = client.txn().commit()
    assert response.succeeded == True
    assert response.responses == []


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

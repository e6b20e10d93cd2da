import coordkv
import pytest


def test_payload_fields():

    payload = coordkv.protocol.message.Payload(key=b'k', limit=None, count_only=True)

    fields = payload.fields()
    assert fields == {'key': b'k', 'count_only': True}
    assert payload.get('limit') is None
    assert payload.get('missing', 5) == 5


def test_encapsulate():

    payload = coordkv.protocol.message.Payload(key=b'k', testing='testing')

    encapsulated = payload.encapsulate()
    assert isinstance(encapsulated, bytes)

    decoded = coordkv.json.loads(encapsulated)
    assert isinstance(decoded, dict)
    assert decoded['testing'] == 'testing'
    assert coordkv.json.unpack(decoded['key']) == b'k'
    assert 'error' not in decoded


    # Encapsulation is cached; omitted fields only apply to a fresh payload.

    payload = coordkv.protocol.message.Payload(key=b'k', testing='testing')
    payload.omit = payload.omit | set(('testing',))

    decoded = coordkv.json.loads(payload.encapsulate())
    assert 'testing' not in decoded


def test_request_parts():

    payload = coordkv.protocol.message.Payload(key=b'k')
    request = coordkv.protocol.message.Request('RANGE', payload)

    parts = tuple(request)
    assert len(parts) == 4
    assert parts[0] == coordkv.protocol.message.version
    assert parts[1] == request.id
    assert parts[2] == b'RANGE'

    restored = coordkv.protocol.message.Request.from_parts(parts)
    assert restored.id == request.id
    assert restored.type == 'RANGE'
    assert coordkv.json.unpack(restored.payload.key) == b'k'


def test_request_ids_are_unique():

    first = coordkv.protocol.message.Request('STATUS')
    second = coordkv.protocol.message.Request('STATUS')

    assert first.id != second.id
    assert len(first.id) == 8


def test_invalid_types():

    with pytest.raises(ValueError):
        coordkv.protocol.message.Request('BOGUS')

    with pytest.raises(ValueError):
        coordkv.protocol.message.Message('RANGE')


def test_version_mismatch():

    parts = (b'0', b'00000001', b'ACK', b'')

    with pytest.raises(ValueError):
        coordkv.protocol.message.Message.from_parts(parts)


def test_errors_round_trip():

    error = coordkv.errors.to_remote(coordkv.errors.NotFound('requested lease not found'))
    exception = coordkv.errors.from_remote(error)

    assert isinstance(exception, coordkv.errors.NotFound)
    assert str(exception) == 'requested lease not found'


    error = coordkv.errors.to_remote(KeyError('surprise'), debug='traceback text')
    exception = coordkv.errors.from_remote(error)

    assert isinstance(exception, coordkv.errors.RemoteError)
    assert exception.remote_type == 'KeyError'
    assert exception.debug == 'traceback text'


def test_unavailable():
    """ Nothing listens on the discard port; the request is never
        acknowledged.
    """

    client = coordkv.Client('127.0.0.1', 9, timeout=2)

    with pytest.raises(coordkv.errors.Unavailable):
        client.get('key')

    with pytest.raises(coordkv.errors.DeadlineExceeded):
        client.get('key', timeout=0.2)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

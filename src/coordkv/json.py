''' Wrapper module for the equivalent of :func:`json.loads` and
    :func:`json.dumps`, plus the helpers that move byte strings through
    JSON. Keys and values are arbitrary bytes; msgspec encodes any bytes
    object as a base64 string, and :func:`unpack` reverses that on the
    receiving side, where the decoder has no schema telling it which
    strings were originally bytes.
'''

import base64

import msgspec


# The msgspec 'encode' operation returns bytes; everything on the wire is
# bytes, so there is no str variant of dumps.

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()
dumps = encoder.encode
loads = decoder.decode


def pack(value):
    """ Return the base64 text for a bytes *value*, as it would appear in
        an encoded payload.
    """

    return base64.b64encode(value).decode('ascii')


def unpack(value):
    """ Return the bytes represented by *value*. None and the empty string
        both come back as empty bytes; bytes pass through untouched, which
        allows in-process callers to skip the encoding step entirely.
    """

    if value is None or value == '':
        return b''

    if isinstance(value, (bytes, bytearray)):
        return bytes(value)

    return base64.b64decode(value)


def to_bytes(value):
    """ Normalize a caller-supplied key, value or namespace to bytes. Strings
        are encoded as UTF-8.
    """

    if value is None:
        return None

    if isinstance(value, bytes):
        return value

    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)

    if isinstance(value, str):
        return value.encode('utf-8')

    raise TypeError('expected bytes or str, got ' + type(value).__name__)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

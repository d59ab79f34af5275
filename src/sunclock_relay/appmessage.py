"""
Sunclock relay — App Message Codec

Key/value messages exchanged with the watch. Names map to the numeric keys
the watch app registers; on the wire a message is a dictionary:

    count:u8  { key:u32  type:u8  length:u16  value[length] } * count

little-endian, with types 0=bytes, 1=cstring (NUL-terminated UTF-8),
2=unsigned int, 3=signed int. Integers we send are always int32.
"""
from __future__ import annotations

import struct
from typing import Any

APP_KEYS: dict[str, int] = {
    "getLatLong": 0,          # presence is the request, value ignored
    "latitudeData": 1,        # degrees * 1000000
    "longitudeData": 2,       # degrees * 1000000
    "utcOffset": 3,           # seconds, local time to UTC
    "locationFailCode": 4,
    "locationFailMessage": 5,
    "latLongTimeout": 6,      # relay-assigned, the watch app registers no such key; logged only
}
KEY_NAMES: dict[int, str] = {v: k for k, v in APP_KEYS.items()}

TYPE_BYTES = 0
TYPE_CSTRING = 1
TYPE_UINT = 2
TYPE_INT = 3

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_HEADER = struct.Struct("<IBH")
_INT_FORMATS = {1: "b", 2: "h", 4: "i"}
_UINT_FORMATS = {1: "B", 2: "H", 4: "I"}


class AppMessageError(ValueError):
    pass


def _key_of(name: str | int) -> int:
    if isinstance(name, int):
        return name
    try:
        return APP_KEYS[name]
    except KeyError:
        raise AppMessageError(f"unknown app message key: {name!r}") from None


def pack(payload: dict[str | int, Any]) -> bytes:
    """Serialise *payload* to the watch dictionary format."""
    if len(payload) > 255:
        raise AppMessageError("too many tuples in one message")

    out = bytearray([len(payload)])
    for name, value in payload.items():
        key = _key_of(name)
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, int):
            if not INT32_MIN <= value <= INT32_MAX:
                raise AppMessageError(f"{name}: {value} does not fit in int32")
            kind, data = TYPE_INT, struct.pack("<i", value)
        elif isinstance(value, str):
            kind, data = TYPE_CSTRING, value.encode("utf-8") + b"\0"
        elif isinstance(value, (bytes, bytearray)):
            kind, data = TYPE_BYTES, bytes(value)
        else:
            raise AppMessageError(f"{name}: unsupported value type {type(value).__name__}")
        if len(data) > 0xFFFF:
            raise AppMessageError(f"{name}: value too long")
        out += _HEADER.pack(key, kind, len(data)) + data
    return bytes(out)


def unpack(buf: bytes) -> dict[str | int, Any]:
    """Parse a watch dictionary. Known keys come back by name."""
    if not buf:
        raise AppMessageError("empty message")

    count = buf[0]
    offset = 1
    result: dict[str | int, Any] = {}
    for _ in range(count):
        if offset + _HEADER.size > len(buf):
            raise AppMessageError("truncated tuple header")
        key, kind, length = _HEADER.unpack_from(buf, offset)
        offset += _HEADER.size
        data = buf[offset:offset + length]
        if len(data) != length:
            raise AppMessageError("truncated tuple value")
        offset += length

        if kind == TYPE_BYTES:
            value: Any = bytes(data)
        elif kind == TYPE_CSTRING:
            value = data.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        elif kind in (TYPE_INT, TYPE_UINT):
            table = _INT_FORMATS if kind == TYPE_INT else _UINT_FORMATS
            if length not in table:
                raise AppMessageError(f"bad integer width {length}")
            value = struct.unpack("<" + table[length], data)[0]
        else:
            raise AppMessageError(f"unknown tuple type {kind}")
        result[KEY_NAMES.get(key, key)] = value
    return result

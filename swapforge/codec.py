"""Primitive little-endian codecs shared by every account and instruction layout.

Each primitive wraps a ``construct`` field so it can be dropped into a
``Struct`` with the usual ``"name" / U64`` syntax, and also exposes
``encode(value, buffer, offset)`` / ``decode(buffer, offset)`` for direct
buffer access.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Any, Union

from construct import Adapter, Bytes, BytesInteger, Construct, Flag, Int8ul, Int16ul, Int32ul, Int64ul, Padding
from solders.pubkey import Pubkey

from .constants import WAD
from .errors import CodecRangeError

# Enough digits to hold a u128 mantissa exactly.
_WAD_PRECISION = 60

DecimalLike = Union[Decimal, int, str, float]


class _Unsigned(Adapter):
    def __init__(self, subcon: Construct, bits: int):
        super().__init__(subcon)
        self.bits = bits

    def _decode(self, obj, context, path):
        return obj

    def _encode(self, obj, context, path):
        if isinstance(obj, bool) or not isinstance(obj, int):
            raise CodecRangeError(f"expected an integer for u{self.bits}, got {type(obj).__name__}")
        if obj < 0 or obj >= 1 << self.bits:
            raise CodecRangeError(f"value {obj} out of range for u{self.bits}")
        return obj


class _PublicKey(Adapter):
    def _decode(self, obj, context, path):
        return Pubkey.from_bytes(bytes(obj))

    def _encode(self, obj, context, path):
        return pubkey_bytes(obj)


class _WadDecimal(Adapter):
    def __init__(self, subcon: Construct, width: int):
        super().__init__(subcon)
        self.width = width

    def _decode(self, obj, context, path):
        with localcontext() as ctx:
            ctx.prec = _WAD_PRECISION
            return Decimal(obj) / WAD

    def _encode(self, obj, context, path):
        raw = encode_wad(obj)
        if raw >= 1 << (8 * self.width):
            raise CodecRangeError(f"decimal {obj} does not fit in {self.width} bytes")
        return raw


def pubkey_bytes(value: Any) -> bytes:
    """Return the 32 raw bytes of a public key given as Pubkey, str or bytes."""
    if isinstance(value, Pubkey):
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes(Pubkey.from_string(value))
        except ValueError as exc:
            raise CodecRangeError(f"invalid public key: {value!r}") from exc
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise CodecRangeError(f"public key must be 32 bytes, got {len(value)}")
        return bytes(value)
    raise CodecRangeError(f"cannot encode {type(value).__name__} as a public key")


def encode_wad(value: DecimalLike) -> int:
    """Scale a decimal by WAD, truncating toward zero."""
    if isinstance(value, bool):
        raise CodecRangeError("expected a decimal, got bool")
    try:
        # str() keeps floats at their shortest repr instead of the binary expansion.
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise CodecRangeError(f"invalid decimal: {value!r}") from exc
    if not number.is_finite() or number < 0:
        raise CodecRangeError(f"decimal {value} must be finite and non-negative")
    with localcontext() as ctx:
        ctx.prec = _WAD_PRECISION
        return int((number * WAD).to_integral_value(rounding=ROUND_DOWN))


class Primitive:
    """A fixed-width field: a construct plus buffer-level encode/decode."""

    def __init__(self, name: str, con: Construct):
        self.name = name
        self.con = con
        self.size = con.sizeof()

    def __rtruediv__(self, field_name: str):
        return field_name / self.con

    def __repr__(self) -> str:
        return f"<{self.name} size={self.size}>"

    def _check_span(self, buffer, offset: int) -> None:
        if offset < 0 or offset + self.size > len(buffer):
            raise CodecRangeError(
                f"{self.name} needs {self.size} bytes at offset {offset}, buffer has {len(buffer)}"
            )

    def encode(self, value: Any, buffer: bytearray, offset: int = 0) -> int:
        """Write ``value`` into ``buffer`` at ``offset`` and return the bytes written."""
        self._check_span(buffer, offset)
        data = self.con.build(value)
        buffer[offset : offset + self.size] = data
        return self.size

    def decode(self, buffer, offset: int = 0) -> Any:
        self._check_span(buffer, offset)
        return self.con.parse(bytes(buffer[offset : offset + self.size]))


Bool = Primitive("bool", Flag)
U8 = Primitive("u8", _Unsigned(Int8ul, 8))
U16 = Primitive("u16", _Unsigned(Int16ul, 16))
U32 = Primitive("u32", _Unsigned(Int32ul, 32))
U64 = Primitive("u64", _Unsigned(Int64ul, 64))
U128 = Primitive("u128", _Unsigned(BytesInteger(16, swapped=True), 128))
PublicKey = Primitive("publicKey", _PublicKey(Bytes(32)))


def WadDecimal(width: int = 8) -> Primitive:
    """Fixed-point decimal stored as ``value * WAD`` in ``width`` bytes."""
    if width == 8:
        return Primitive("decimal", _WadDecimal(Int64ul, 8))
    if width == 16:
        return Primitive("decimal128", _WadDecimal(BytesInteger(16, swapped=True), 16))
    raise ValueError(f"unsupported decimal width: {width}")


class _ReservedPrimitive(Primitive):
    def encode(self, value: Any = None, buffer: bytearray = None, offset: int = 0) -> int:
        self._check_span(buffer, offset)
        buffer[offset : offset + self.size] = bytes(self.size)
        return self.size

    def decode(self, buffer, offset: int = 0) -> None:
        self._check_span(buffer, offset)
        return None


def Reserved(length: int) -> Primitive:
    """``length`` zero bytes on write, skipped on read."""
    return _ReservedPrimitive(f"reserved[{length}]", Padding(length))


Decimal64 = WadDecimal(8)
Decimal128 = WadDecimal(16)

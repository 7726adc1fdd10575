"""PostgreSQL type descriptions and binary array encoding/decoding helpers."""

from __future__ import annotations

import enum
import struct
from collections.abc import Callable, Iterable, Iterator, Sized
from dataclasses import dataclass
from typing import Any, Optional

__all__ = [
    "Kind",
    "PgType",
    "ArrayIterator",
    "Domain",
    "DomainArray",
    "IterSql",
    "escape_domain",
    "slice_iter",
    "encode_array",
    "decode_array",
]

_I32 = struct.Struct("!i")
_HEADER = struct.Struct("!iiI")
_DIMENSION = struct.Struct("!ii")
_MAX_LEN = 2**31 - 1

Encoder = Callable[["PgType", Any], Optional[bytes]]
Decoder = Callable[["PgType", bytes], Any]


class Kind(enum.Enum):
    """The category a PostgreSQL type belongs to."""

    SIMPLE = "simple"
    ENUM = "enum"
    PSEUDO = "pseudo"
    ARRAY = "array"
    RANGE = "range"
    DOMAIN = "domain"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class PgType:
    """A PostgreSQL type; arrays and domains carry the type they wrap in ``member``."""

    name: str
    oid: int
    kind: Kind = Kind.SIMPLE
    member: Optional["PgType"] = None

    def __post_init__(self) -> None:
        if self.kind in (Kind.ARRAY, Kind.DOMAIN) and self.member is None:
            raise ValueError(f"{self.kind.value} type {self.name} needs a member type")

    def __str__(self) -> str:
        return self.name


def escape_domain(ty: PgType) -> PgType:
    """Return the underlying type of a domain, or the type itself otherwise."""
    if ty.kind is Kind.DOMAIN and ty.member is not None:
        return ty.member
    return ty


def slice_iter(params: Iterable[Any]) -> Iterator[Any]:
    """Iterate over query parameters with a known length."""
    return iter(tuple(params))


def _array_member(ty: PgType) -> PgType:
    if ty.kind is not Kind.ARRAY or ty.member is None:
        raise TypeError(f"expected array type got {ty}")
    return ty.member


def _sized(items: Iterable[Any]) -> Sized:
    if not isinstance(items, Sized):
        items = list(items)
    if len(items) > _MAX_LEN:
        raise ValueError("value too large to transmit")
    return items


def _write_array(
    element_oid: int, items: Iterable[Any], encode_one: Callable[[Any], Optional[bytes]]
) -> bytes:
    items = _sized(items)
    body = bytearray()
    has_nulls = False
    for item in items:  # type: ignore[attr-defined]
        data = encode_one(item)
        if data is None:
            has_nulls = True
            body += _I32.pack(-1)
            continue
        if len(data) > _MAX_LEN:
            raise ValueError("value too large to transmit")
        body += _I32.pack(len(data))
        body += data
    header = _HEADER.pack(1, int(has_nulls), element_oid) + _DIMENSION.pack(len(items), 1)
    return header + bytes(body)


def encode_array(ty: PgType, items: Iterable[Any], encoder: Encoder) -> bytes:
    """Encode ``items`` as a one-dimensional binary array of the array type ``ty``.

    ``encoder(member_type, value)`` returns the element bytes, or None for NULL.
    """
    member = _array_member(ty)
    return _write_array(member.oid, items, lambda item: encoder(member, item))


class ArrayIterator:
    """Lazy iterator over the decoded elements of a binary PostgreSQL array."""

    def __init__(self, ty: PgType, values: Iterable[Optional[bytes]], decoder: Decoder):
        self.ty = ty
        self._values = iter(values)
        self._decoder = decoder

    def __iter__(self) -> "ArrayIterator":
        return self

    def __next__(self) -> Any:
        raw = next(self._values)
        if raw is None:
            return None
        return self._decoder(self.ty, raw)

    def __repr__(self) -> str:
        return f"ArrayIterator(values=[T], ty={self.ty.name})"


def _iter_elements(buf: bytes, offset: int, count: int) -> Iterator[Optional[bytes]]:
    for _ in range(count):
        if offset + _I32.size > len(buf):
            raise ValueError("unexpected end of array data")
        (length,) = _I32.unpack_from(buf, offset)
        offset += _I32.size
        if length == -1:
            yield None
            continue
        if length < 0:
            raise ValueError("invalid value length")
        end = offset + length
        if end > len(buf):
            raise ValueError("unexpected end of array data")
        yield buf[offset:end]
        offset = end


def decode_array(ty: PgType, raw: bytes, decoder: Decoder) -> ArrayIterator:
    """Parse a binary one-dimensional array; NULL elements come out as None."""
    outer = escape_domain(ty)
    if outer.kind is not Kind.ARRAY or outer.member is None:
        raise TypeError(f"expected array type got {ty}")
    member = escape_domain(outer.member)

    buf = bytes(raw)
    if len(buf) < _HEADER.size:
        raise ValueError("unexpected end of array data")
    ndim, _has_nulls, _oid = _HEADER.unpack_from(buf, 0)
    if ndim < 0:
        raise ValueError("invalid dimension count")
    offset = _HEADER.size
    dims = []
    for _ in range(ndim):
        if offset + _DIMENSION.size > len(buf):
            raise ValueError("unexpected end of array data")
        dims.append(_DIMENSION.unpack_from(buf, offset))
        offset += _DIMENSION.size
    if len(dims) > 1:
        raise ValueError("array contains too many dimensions")
    count = dims[0][0] if dims else 0
    return ArrayIterator(member, _iter_elements(buf, offset, count), decoder)


@dataclass(frozen=True)
class Domain:
    """A value bound to a domain type, encoded as its underlying type."""

    value: Any

    def to_sql(self, ty: PgType, encoder: Encoder) -> Optional[bytes]:
        return encoder(escape_domain(ty), self.value)

    def __repr__(self) -> str:
        return f"DomainWrapper({self.value!r})"


@dataclass(frozen=True)
class IterSql:
    """An array parameter produced afresh by calling ``factory`` on each encoding."""

    factory: Callable[[], Iterable[Any]]

    def to_sql(self, ty: PgType, encoder: Encoder) -> bytes:
        return encode_array(ty, self.factory(), encoder)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.factory())

    def __repr__(self) -> str:
        return "ArrayFn()"


@dataclass(frozen=True)
class DomainArray:
    """An array parameter whose elements belong to a domain type."""

    values: Any

    def to_sql(self, ty: PgType, encoder: Encoder) -> bytes:
        member = escape_domain(_array_member(ty))
        source = self.values.factory() if isinstance(self.values, IterSql) else self.values
        return _write_array(
            member.oid, source, lambda item: Domain(item).to_sql(member, encoder)
        )

    def __repr__(self) -> str:
        return f"ArrayDomain({self.values!r})"
import operator
import struct

import pytest

from pgbind.pgtypes import (
    ArrayIterator,
    Domain,
    DomainArray,
    IterSql,
    Kind,
    PgType,
    decode_array,
    encode_array,
    escape_domain,
    slice_iter,
)

INT4 = PgType("int4", 23)
INT4_ARRAY = PgType("_int4", 1007, Kind.ARRAY, member=INT4)
POSINT = PgType("posint", 70000, Kind.DOMAIN, member=INT4)
POSINT_ARRAY = PgType("_posint", 70001, Kind.ARRAY, member=POSINT)
POSINT_ARRAY_DOMAIN = PgType("posints", 70002, Kind.DOMAIN, member=POSINT_ARRAY)


def encode_int(ty, value):
    return None if value is None else struct.pack("!i", value)


def decode_int(ty, raw):
    return struct.unpack("!i", raw)[0]


def test_escape_domain_unwraps_one_level():
    assert escape_domain(POSINT) is INT4
    assert escape_domain(INT4) is INT4
    assert escape_domain(POSINT_ARRAY_DOMAIN) is POSINT_ARRAY


def test_array_type_requires_member():
    with pytest.raises(ValueError):
        PgType("broken", 1, Kind.ARRAY)


def test_slice_iter_keeps_order_and_length():
    it = slice_iter([1, "a", None])
    assert operator.length_hint(it) == 3
    assert list(it) == [1, "a", None]


def test_encode_array_wire_format():
    raw = encode_array(INT4_ARRAY, [1, None], encode_int)
    expected = bytes.fromhex(
        "00000001" "00000001" "00000017" "00000002" "00000001"
        "00000004" "00000001" "ffffffff"
    )
    assert raw == expected


def test_round_trip_with_nulls():
    values = [5, None, -3, 2**31 - 1]
    raw = encode_array(INT4_ARRAY, values, encode_int)
    assert list(decode_array(INT4_ARRAY, raw, decode_int)) == values


def test_round_trip_empty():
    raw = encode_array(INT4_ARRAY, [], encode_int)
    assert list(decode_array(INT4_ARRAY, raw, decode_int)) == []


def test_decode_zero_dimensions_is_empty():
    raw = struct.pack("!iiI", 0, 0, 23)
    assert list(decode_array(INT4_ARRAY, raw, decode_int)) == []


def test_encode_array_accepts_generator():
    raw = encode_array(INT4_ARRAY, (n for n in range(3)), encode_int)
    assert list(decode_array(INT4_ARRAY, raw, decode_int)) == [0, 1, 2]


def test_encode_array_rejects_non_array():
    with pytest.raises(TypeError, match="expected array type got int4"):
        encode_array(INT4, [1], encode_int)


def test_encode_array_too_large():
    with pytest.raises(ValueError, match="value too large to transmit"):
        encode_array(INT4_ARRAY, range(2**31), encode_int)


def test_decode_rejects_multiple_dimensions():
    raw = struct.pack("!iiIiiii", 2, 0, 23, 1, 1, 1, 1) + struct.pack("!ii", 4, 7)
    with pytest.raises(ValueError, match="too many dimensions"):
        decode_array(INT4_ARRAY, raw, decode_int)


def test_decode_rejects_non_array():
    with pytest.raises(TypeError):
        decode_array(INT4, b"", decode_int)


def test_decode_truncated_header():
    with pytest.raises(ValueError):
        decode_array(INT4_ARRAY, b"\x00\x00", decode_int)


def test_decode_truncated_element():
    raw = encode_array(INT4_ARRAY, [1, 2], encode_int)[:-2]
    it = decode_array(INT4_ARRAY, raw, decode_int)
    assert next(it) == 1
    with pytest.raises(ValueError):
        next(it)


def test_decode_escapes_domains_for_members():
    seen = []

    def decoder(ty, raw):
        seen.append(ty)
        return decode_int(ty, raw)

    raw = encode_array(INT4_ARRAY, [4, 8], encode_int)
    result = decode_array(POSINT_ARRAY_DOMAIN, raw, decoder)
    assert isinstance(result, ArrayIterator)
    assert result.ty is INT4
    assert list(result) == [4, 8]
    assert seen == [INT4, INT4]


def test_domain_to_sql_uses_underlying_type():
    seen = []

    def encoder(ty, value):
        seen.append(ty)
        return encode_int(ty, value)

    assert Domain(7).to_sql(POSINT, encoder) == struct.pack("!i", 7)
    assert seen == [INT4]


def test_domain_to_sql_null():
    assert Domain(None).to_sql(POSINT, encode_int) is None


def test_domain_array_uses_escaped_member_oid():
    seen = []

    def encoder(ty, value):
        seen.append(ty)
        return encode_int(ty, value)

    raw = DomainArray([1, 2]).to_sql(POSINT_ARRAY, encoder)
    assert struct.unpack_from("!I", raw, 8)[0] == INT4.oid
    assert seen == [INT4, INT4]
    assert list(decode_array(POSINT_ARRAY, raw, decode_int)) == [1, 2]


def test_domain_array_over_iter_sql():
    source = [3, 4, 5]
    raw = DomainArray(IterSql(lambda: iter(source))).to_sql(POSINT_ARRAY, encode_int)
    assert list(decode_array(POSINT_ARRAY, raw, decode_int)) == source


def test_domain_array_rejects_non_array():
    with pytest.raises(TypeError):
        DomainArray([1]).to_sql(POSINT, encode_int)


def test_iter_sql_calls_factory_each_time():
    calls = []

    def factory():
        calls.append(1)
        return iter([9, 10])

    param = IterSql(factory)
    first = param.to_sql(INT4_ARRAY, encode_int)
    second = param.to_sql(INT4_ARRAY, encode_int)
    assert first == second
    assert len(calls) == 2
    assert list(decode_array(INT4_ARRAY, first, decode_int)) == [9, 10]


def test_iter_sql_keeps_member_type_unescaped():
    seen = []

    def encoder(ty, value):
        seen.append(ty)
        return encode_int(ty, value)

    raw = IterSql(lambda: [1]).to_sql(POSINT_ARRAY, encoder)
    assert seen == [POSINT]
    assert struct.unpack_from("!I", raw, 8)[0] == POSINT.oid


def test_iter_sql_matches_encode_array():
    values = [1, None, 3]
    assert IterSql(lambda: values).to_sql(INT4_ARRAY, encode_int) == encode_array(
        INT4_ARRAY, values, encode_int
    )


def test_reprs():
    assert repr(IterSql(lambda: [])) == "ArrayFn()"
    assert repr(Domain(1)) == "DomainWrapper(1)"
    assert repr(DomainArray([1])) == "ArrayDomain([1])"
import pytest

from hamax25.callsign import (
    CallsignError,
    addrmatch,
    decode_callsign,
    encode_callsign,
    normalize_callsign,
)


@pytest.mark.parametrize("text", ["N0CALL", "AB", "K9WSB-1", "VK2KTJ-15", "X-9", "DL9SAU-10"])
def test_roundtrip(text):
    assert decode_callsign(encode_callsign(text)) == text


def test_length_is_seven():
    assert len(encode_callsign("AB-3")) == 7


def test_padding_uses_shifted_space():
    raw = encode_callsign("AB")
    assert raw[2:6] == bytes([0x40]) * 4
    assert raw[6] == 0


def test_lowercase_is_uppercased():
    assert encode_callsign("n0call-2") == encode_callsign("N0CALL-2")


def test_ssid_zero_not_printed():
    assert decode_callsign(encode_callsign("AB-0")) == "AB"


@pytest.mark.parametrize("text", ["", "TOOLONG", "AB-16", "ABCDEFG-1"])
def test_invalid_callsigns(text):
    with pytest.raises(CallsignError):
        encode_callsign(text)


def test_callsign_error_is_value_error():
    with pytest.raises(ValueError):
        encode_callsign("")


def test_addrmatch_same():
    a = encode_callsign("N0CALL-3")
    assert addrmatch(a, a)


def test_addrmatch_ignores_flag_bits():
    a = bytearray(encode_callsign("N0CALL-3"))
    a[6] |= 0x80 | 0x60 | 0x01
    a[0] |= 0x01
    assert addrmatch(bytes(a), encode_callsign("N0CALL-3"))


def test_addrmatch_ssid_zero_wildcard():
    assert addrmatch(encode_callsign("N0CALL-7"), encode_callsign("N0CALL"))
    assert not addrmatch(encode_callsign("N0CALL"), encode_callsign("N0CALL-7"))


def test_addrmatch_different_calls():
    assert not addrmatch(encode_callsign("N0CALL"), encode_callsign("N0CALM"))
    assert not addrmatch(encode_callsign("N0CALL-1"), encode_callsign("N0CALL-2"))


def test_addrmatch_empty_never_matches():
    empty = bytes(7)
    assert not addrmatch(empty, encode_callsign("AB"))
    assert not addrmatch(encode_callsign("AB"), empty)


def test_normalize_sets_reserved_bits_and_clears_flags():
    raw = bytearray(encode_callsign("AB-3"))
    raw[6] |= 0x81
    raw[1] |= 0x01
    norm = normalize_callsign(bytes(raw))
    assert norm[6] & 0x60 == 0x60
    assert norm[6] & 0x81 == 0
    assert all(b & 1 == 0 for b in norm[:6])
    assert decode_callsign(norm) == "AB-3"


def test_normalize_idempotent():
    raw = encode_callsign("VK5ZEU-9")
    once = normalize_callsign(raw)
    assert normalize_callsign(once) == once
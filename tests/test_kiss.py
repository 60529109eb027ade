import pytest

from hamax25.ipd.kiss import (
    FEND,
    FESC,
    PTABLE_SIZE,
    TFEND,
    TFESC,
    KissDecoder,
    ParamTable,
    encode_kiss,
)
from hamax25.ipd.settings import MAX_FRAME, Stats


def test_encode_escapes_special_bytes():
    assert encode_kiss(0, bytes([FEND, FESC])) == bytes(
        [FEND, 0, FESC, TFEND, FESC, TFESC, FEND]
    )


def test_encode_escapes_type_byte():
    assert encode_kiss(FEND, b"") == bytes([FEND, FESC, TFEND, FEND])
    assert encode_kiss(FESC, b"") == bytes([FEND, FESC, TFESC, FEND])


def test_encode_truncates_to_max_frame():
    frame = encode_kiss(0, bytes(MAX_FRAME * 2))
    assert len(frame) == MAX_FRAME
    assert frame[0] == FEND


@pytest.mark.parametrize(
    "payload",
    [b"hello", bytes(range(256)), bytes([FEND, FESC, TFEND, TFESC]), b"\x00"],
)
def test_round_trip(payload):
    stats = Stats()
    decoder = KissDecoder(stats)
    assert decoder.feed(encode_kiss(0, payload)) == [payload]
    assert stats.kiss_in == 1


def test_feed_in_small_chunks():
    payload = bytes([1, FEND, 2, FESC, 3])
    stream = encode_kiss(0, payload) + encode_kiss(0x10, payload)
    decoder = KissDecoder(Stats())
    frames = []
    for index in range(len(stream)):
        frames.extend(decoder.feed(stream[index:index + 1]))
    assert frames == [payload, payload]


def test_bad_type_is_counted_and_dropped():
    stats = Stats()
    decoder = KissDecoder(stats)
    assert decoder.feed(bytes([FEND, 0x05, 1, 2, FEND])) == []
    assert stats.kiss_badtype == 1
    assert stats.kiss_in == 0


def test_too_big_frame_is_dropped():
    stats = Stats()
    decoder = KissDecoder(stats)
    assert decoder.feed(bytes([FEND, 0]) + bytes([1]) * MAX_FRAME + bytes([FEND])) == []
    assert stats.kiss_toobig == 1


def test_empty_frames_ignored():
    stats = Stats()
    decoder = KissDecoder(stats)
    assert decoder.feed(bytes([FEND, FEND, FEND])) == []
    assert stats.kiss_in == 0 and stats.kiss_badtype == 0


def test_param_table_masks_and_limits():
    table = ParamTable()
    table.add(0x101, 0x1FF)
    assert table.entries[0] == (0x01, 0xFF)
    for _ in range(PTABLE_SIZE - 1):
        assert table.add(2, 3)
    assert table.add(4, 5) is False
    assert len(table) == PTABLE_SIZE


def test_param_frames_and_dump():
    table = ParamTable()
    table.add(1, 50)
    table.add(2, 64)
    assert table.frames() == [encode_kiss(1, bytes([50])), encode_kiss(2, bytes([64]))]
    text = table.dump()
    assert "\n2 parameters\n" in text
    assert "  1\t50\n" in text
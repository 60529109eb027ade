"""KISS framing: byte stuffing, frame assembly and TNC parameters."""

from __future__ import annotations

from hamax25.ipd.settings import MAX_FRAME, Stats, logger

FEND = 0xC0
FESC = 0xDB
TFEND = 0xDC
TFESC = 0xDD

PTABLE_SIZE = 10

_ACCEPTED_TYPES = (0x00, 0x10)


def _escape(byte: int) -> bytes:
    if byte == FEND:
        return bytes((FESC, TFEND))
    if byte == FESC:
        return bytes((FESC, TFESC))
    return bytes((byte,))


def encode_kiss(frame_type: int, payload: bytes) -> bytes:
    """Wrap ``payload`` in a KISS frame with control byte ``frame_type``.

    The result never exceeds MAX_FRAME bytes; anything beyond is dropped.
    """
    out = bytearray([FEND])
    out += _escape(frame_type & 0xFF)
    for byte in payload:
        out += _escape(byte)
    out.append(FEND)
    return bytes(out[:MAX_FRAME])


class KissDecoder:
    """Assemble AX.25 frames from arbitrary chunks of a KISS byte stream."""

    def __init__(self, stats: Stats) -> None:
        self.stats = stats
        self._frame = bytearray()
        self._escaped = False

    def feed(self, data: bytes) -> list[bytes]:
        """Consume ``data`` and return every complete frame, without its control byte."""
        frames: list[bytes] = []
        for byte in data:
            if byte == FEND:
                self._finish(frames)
                continue
            if byte == FESC:
                self._escaped = True
                continue
            if self._escaped:
                if byte == TFEND:
                    byte = FEND
                elif byte == TFESC:
                    byte = FESC
                self._escaped = False
            if len(self._frame) < MAX_FRAME:
                self._frame.append(byte)
        return frames

    def _finish(self, frames: list[bytes]) -> None:
        frame = self._frame
        if frame:
            if frame[0] in _ACCEPTED_TYPES:
                if len(frame) < MAX_FRAME - 2:
                    self.stats.kiss_in += 1
                    frames.append(bytes(frame[1:]))
                else:
                    self.stats.kiss_toobig += 1
                    logger.debug("assemble_kiss: dumped - frame too large")
            else:
                self.stats.kiss_badtype += 1
                logger.debug("assemble_kiss: dumped - control byte non-zero")
        self._frame = bytearray()
        self._escaped = False


class ParamTable:
    """TNC parameters to send at start-up, in the order they were added."""

    def __init__(self) -> None:
        self.entries: list[tuple[int, int]] = []

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, parameter: int, value: int) -> bool:
        """Add a parameter; return False if the table is full and the entry was ignored."""
        if len(self.entries) >= PTABLE_SIZE:
            logger.warning("param table is full; entry ignored.")
            return False
        entry = (parameter & 0xFF, value & 0xFF)
        self.entries.append(entry)
        logger.debug("added param: %d\t%d", *entry)
        return True

    def dump(self) -> str:
        """Return the table as printable text."""
        lines = [f"\n{len(self.entries)} parameters"]
        lines.extend(f"  {p}\t{v}" for p, v in self.entries)
        return "\n".join(lines) + "\n"

    def frames(self) -> list[bytes]:
        """Return one KISS frame per parameter, ready to send to the TNC."""
        return [encode_kiss(p, bytes([v])) for p, v in self.entries]
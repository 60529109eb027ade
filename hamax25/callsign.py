"""AX.25 callsign encoding: shifted ASCII with a trailing SSID byte."""

from __future__ import annotations

SPACE = ord(" ") << 1


class CallsignError(ValueError):
    """Raised when text is not a valid callsign."""


def _atoi(text: str) -> int:
    text = text.lstrip(" \t\n\r\f\v")
    sign = 1
    if text[:1] in ("+", "-"):
        if text[0] == "-":
            sign = -1
        text = text[1:]
    digits = ""
    for ch in text:
        if not ("0" <= ch <= "9"):
            break
        digits += ch
    return sign * int(digits) if digits else 0


def encode_callsign(text: str) -> bytes:
    """Convert a callsign such as ``N0CALL-5`` into its 7-byte AX.25 form."""
    if not text:
        raise CallsignError("empty callsign")
    call = bytearray([SPACE] * 6 + [0])
    for index, ch in enumerate(text):
        if ch == "-":
            ssid = _atoi(text[index + 1:])
            if ssid > 15:
                raise CallsignError(f"SSID out of range in {text!r}")
            call[6] = (ssid << 1) & 0xFF
            return bytes(call)
        if "a" <= ch <= "z":
            ch = ch.upper()
        if index > 5:
            raise CallsignError(f"callsign too long: {text!r}")
        call[index] = (ord(ch) << 1) & 0xFF
    return bytes(call)


def decode_callsign(raw: bytes) -> str:
    """Convert a 7-byte AX.25 address into printable text."""
    chars = []
    for byte in raw[:6]:
        if byte == SPACE:
            break
        chars.append(chr(byte >> 1))
    ssid = (raw[6] >> 1) & 0x0F
    if ssid > 0:
        chars.append(f"-{ssid}")
    return "".join(chars)


def addrmatch(a: bytes, b: bytes) -> bool:
    """Return True if address ``a`` matches ``b``; SSID 0 in ``b`` is a wildcard."""
    if a[0] == 0 or b[0] == 0:
        return False
    if any((x ^ y) & 0xFE for x, y in zip(a[:6], b[:6])):
        return False
    if b[6] & 0x1E == 0:
        return True
    return not ((a[6] ^ b[6]) & 0x1E)


def normalize_callsign(raw: bytes) -> bytes:
    """Strip flag bits from an address and set the reserved SSID bits."""
    return bytes(byte & 0xFE for byte in raw[:6]) + bytes([(raw[6] & 0x1E) | 0x60])
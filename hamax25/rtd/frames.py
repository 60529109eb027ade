"""Parsing of AX.25 frames heard on a port, for route learning."""

from __future__ import annotations

from dataclasses import dataclass

from hamax25.rtd.portconfig import (
    ALEN, AX25_MAX_DIGIS, AXLEN, IPLEN, PID_ARP, PID_IP, PID_SEGMENT,
)

SEG_FIRST = 0x80
HDLCAEB = 0x01
SSSID_SPARE = 0x40
AX25_REPEATED = 0x80

LAPB_I = 0x00
LAPB_S = 0x01
LAPB_UI = 0x03
LAPB_PF = 0x10


@dataclass(frozen=True)
class HeardFrame:
    """Addresses and type of a fully digipeated frame.

    ``digipeaters`` is the return path (reverse order of the frame), and
    ``ip`` the source IPv4 address of a carried IP packet, first octet in
    the low byte, or 0.
    """

    dest: bytes
    source: bytes
    digipeaters: tuple[bytes, ...]
    ctl: int
    pid: int
    ip: int = 0

    @property
    def ipmode(self) -> bool:
        """True for I frames (virtual circuit), False for datagrams."""
        return self.ctl == LAPB_I


def check_ax25_addr(data: bytes) -> bool:
    """Return True if ``data`` starts with a strictly valid callsign."""
    if len(data) < ALEN:
        return False
    k = 0
    while k < ALEN:
        c = chr(data[k] >> 1)
        if c == " ":
            break
        if not ("A" <= c <= "Z" or "0" <= c <= "9"):
            return False
        k += 1
    if k == 0:
        return False
    return all(data[j] >> 1 == ord(" ") for j in range(k + 1, ALEN))


def ip_from_header(data: bytes) -> int:
    """Return the source address of an IPv4 header, or 0 if the header is too short."""
    if not data or (data[0] & 0x0F) * 4 < IPLEN or len(data) < 16:
        return 0
    return int.from_bytes(bytes(data[12:16]), "little")


def _mask(addr: bytes) -> bytes:
    return bytes(addr[:ALEN]) + bytes([addr[ALEN] & 0x1E])


def parse_frame(packet: bytes) -> HeardFrame | None:
    """Parse a KISS packet from the monitor socket; None if invalid or not fully repeated."""
    if not packet or packet[0] & 0x0F:
        return None
    data = bytes(packet[1:])
    size = len(data)
    if size < 2 * AXLEN + 1:
        return None

    if not check_ax25_addr(data):
        return None
    dest = _mask(data[:AXLEN])
    pos = AXLEN
    if not check_ax25_addr(data[pos:]):
        return None
    source = _mask(data[pos:pos + AXLEN])
    pos += ALEN

    extseq = bool(~data[pos] & SSSID_SPARE)

    digis: list[bytes] = []
    while data[pos] & HDLCAEB != HDLCAEB:
        pos += 1
        if pos + AXLEN > size or not check_ax25_addr(data[pos:]):
            return None
        if len(digis) >= AX25_MAX_DIGIS:
            return None
        digis.append(data[pos:pos + AXLEN])
        pos += ALEN

    pos += 1
    if pos >= size:
        return None

    if data[pos] & LAPB_S == LAPB_I:
        ctl = LAPB_I
    else:
        ctl = data[pos]
        if not extseq:
            ctl &= ~LAPB_PF & 0xFF

    pid = 0
    if ctl in (LAPB_I, LAPB_UI):
        pos += 2 if extseq else 1
        if pos >= size:
            return None
        pid = data[pos]
        if pid == PID_SEGMENT:
            pos += 1
            if pos >= size:
                return None
            pid = 0
            if data[pos]:
                pid = data[pos]
                pos += 1
                if pos >= size:
                    return None

    if any(not digi[ALEN] & AX25_REPEATED for digi in digis):
        return None
    path = tuple(_mask(digi) for digi in reversed(digis))

    ip = 0
    if pid == PID_IP:
        pos += 1
        if pos < size:
            ip = ip_from_header(data[pos:])
    # ARP payloads yield no usable address.
    elif pid == PID_ARP:
        ip = 0

    return HeardFrame(dest=dest, source=source, digipeaters=path, ctl=ctl, pid=pid, ip=ip)
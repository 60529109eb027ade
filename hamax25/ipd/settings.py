"""Runtime settings, statistics and logging for the AX.25-over-IP daemon."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields

SYSCONFDIR = "/etc/ax25"
LOCALSTATEDIR = "/var/ax25"

CONF_AX25IPD_FILE = f"{SYSCONFDIR}/ax25ipd.conf"
CONF_AX25ROUTED_FILE = f"{SYSCONFDIR}/ax25rtd.conf"
DATA_AX25ROUTED_CTL_SOCK = f"{LOCALSTATEDIR}/ax25rtd/control"
DATA_AX25ROUTED_AXRT_FILE = f"{LOCALSTATEDIR}/ax25rtd/ax25_route"
DATA_AX25ROUTED_IPRT_FILE = f"{LOCALSTATEDIR}/ax25rtd/ip_route"
PROC_AX25_FILE = "/proc/net/ax25"
PROC_IP_ROUTE_FILE = "/proc/net/route"

IPPROTO_AX25 = 93
DEFAULT_UDP_PORT = 10093
MAX_FRAME = 2048

logger = logging.getLogger("hamax25.ax25ipd")


def _empty_call() -> bytes:
    return bytes(7)


@dataclass
class Settings:
    """Configuration of one daemon instance, with its defaults."""

    udp_mode: bool = False
    ip_mode: bool = False
    udp_port: int = 0
    ttydevice: str = ""
    ptysymlink: str = ""
    ttyspeed: int = 9600
    mycall: bytes = field(default_factory=_empty_call)
    mycall2: bytes = field(default_factory=_empty_call)
    myalias: bytes = field(default_factory=_empty_call)
    myalias2: bytes = field(default_factory=_empty_call)
    beacon_text: str = ""
    beacon_interval: int = 0
    beacon_every: bool = False
    digi: bool = True
    loglevel: int = 0
    dual_port: bool = False

    def log(self, level: int, message: str, *args) -> bool:
        """Log ``message % args`` if ``level`` is within the verbosity; return whether it was."""
        if self.loglevel < level:
            return False
        text = message % args if args else message
        logger.warning("%s", text.strip("\n"))
        return True


_STAT_LINES = (
    ("Input stats:", None),
    ("KISS input packets:  %d", "kiss_in"),
    ("           too big:  %d", "kiss_toobig"),
    ("          bad type:  %d", "kiss_badtype"),
    ("         too short:  %d", "kiss_tooshort"),
    ("        not for me:  %d", "kiss_not_for_me"),
    ("  I am destination:  %d", "kiss_i_am_dest"),
    ("    no route found:  %d", "kiss_no_ip_addr"),
    ("UDP  input packets:  %d", "udp_in"),
    ("IP   input packets:  %d", "ip_in"),
    ("   failed CRC test:  %d", "ip_failed_crc"),
    ("         too short:  %d", "ip_tooshort"),
    ("        not for me:  %d", "ip_not_for_me"),
    ("  I am destination:  %d", "ip_i_am_dest"),
    ("", None),
    ("Output stats:", None),
    ("KISS output packets: %d", "kiss_out"),
    ("            beacons: %d", "kiss_beacon_outs"),
    ("UDP  output packets: %d", "udp_out"),
    ("IP   output packets: %d", "ip_out"),
)


@dataclass
class Stats:
    """Packet counters."""

    kiss_in: int = 0
    kiss_toobig: int = 0
    kiss_badtype: int = 0
    kiss_out: int = 0
    kiss_beacon_outs: int = 0
    kiss_tooshort: int = 0
    kiss_not_for_me: int = 0
    kiss_i_am_dest: int = 0
    kiss_no_ip_addr: int = 0
    udp_in: int = 0
    udp_out: int = 0
    ip_in: int = 0
    ip_out: int = 0
    ip_failed_crc: int = 0
    ip_tooshort: int = 0
    ip_not_for_me: int = 0
    ip_i_am_dest: int = 0

    def report(self) -> str:
        """Return the input and output statistics as printable text."""
        lines = [
            template % getattr(self, name) if name else template
            for template, name in _STAT_LINES
        ]
        return "\n" + "\n".join(lines) + "\n\n"

    def reset(self) -> None:
        """Zero every counter."""
        for f in fields(self):
            setattr(self, f.name, 0)
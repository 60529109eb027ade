"""Per-port configuration of the AX.25 route learning daemon."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

IP_MAXROUTES = 4096
AX25_MAXROUTES = 4096
AX25_MAXCALLS = 32
AX25_MAX_DIGIS = 8

ALEN = 6
AXLEN = 7
IPLEN = 20

PID_SEGMENT = 0x08
PID_ARP = 0xCD
PID_IP = 0xCC
PID_NETROM = 0xCF


@dataclass
class PortConfig:
    """Learning options and identity of one AX.25 port."""

    port: str
    dev: str = ""
    ax25_add_route: bool = False
    ax25_for_me: bool = False
    ax25_add_default: bool = False
    ip_add_route: bool = False
    ip_add_arp: bool = False
    ip_adjust_mode: bool = False
    ip_arp_use_netlink: bool = False
    dg_mtu: int = 0
    vc_mtu: int = 0
    tcp_irtt: int = 0
    netmask: int = 0
    ip: int = 0
    mycalls: list[bytes] = field(default_factory=list)
    ax25_default_path: list[bytes] = field(default_factory=list)

    def is_mycall(self, call: bytes) -> bool:
        """Return True if ``call`` is one of this port's own callsigns."""
        call = bytes(call[:AXLEN])
        return any(call == mine for mine in self.mycalls)

    def add_mycall(self, call: bytes) -> bool:
        """Add ``call`` to the port's callsigns; False if known already or the list is full."""
        call = bytes(call[:AXLEN])
        if self.is_mycall(call) or len(self.mycalls) >= AX25_MAXCALLS:
            return False
        self.mycalls.append(call)
        return True

    def in_subnet(self, ip: int) -> bool:
        """Return True if ``ip`` lies in this port's IP network."""
        return ((ip ^ self.ip) & self.netmask) == 0


def find_config(configs: Iterable[PortConfig], name: str) -> PortConfig | None:
    """Find a port by network device name, falling back to the port name."""
    configs = list(configs)
    for config in configs:
        if config.dev == name:
            return config
    for config in configs:
        if config.port == name:
            return config
    return None
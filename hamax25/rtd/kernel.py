"""Pushing learned routes into the kernel: ARP entries, IP routes, AX.25 routes, IP mode."""

from __future__ import annotations

import fcntl
import logging
import socket
import struct
import subprocess
from typing import Iterable

from hamax25.ipd.settings import PROC_IP_ROUTE_FILE
from hamax25.rtd.cache import Ax25Route, dotted_quad
from hamax25.rtd.portconfig import AX25_MAX_DIGIS, AXLEN, PortConfig, find_config

IP_COMMAND = "/sbin/ip"

AF_AX25 = 3
SIOCADDRT = 0x890B
SIOCDELRT = 0x890C
SIOCSARP = 0x8955
SIOCAX25OPTRT = 0x89E7
AX25_SET_RT_IPMODE = 2
ATF_COM = 0x02
ATF_PERM = 0x04
IFNAMSIZ = 16

logger = logging.getLogger("hamax25.ax25rtd")


class KernelRouteError(OSError):
    """Raised when a route could not be installed; the cache entry should be invalidated."""


def iproute2_command(ip: int, dev: str, table: str, add: bool) -> list[str]:
    """Return the ``ip route`` command that adds or deletes a host route."""
    command = [IP_COMMAND, "route", "add" if add else "del", dotted_quad(ip), "dev", dev]
    if table:
        command += ["table", table, "proto", "ax25rtd"]
    return command


def find_conflicting_routes(route_text: str, ip: int) -> list[str]:
    """Return the devices that hold a direct route to ``ip`` in /proc/net/route text."""
    devices = []
    for line in route_text.splitlines()[1:]:
        tokens = line.split()
        if len(tokens) < 3:
            continue
        try:
            dest = int(tokens[1], 16)
            gateway = int(tokens[2], 16)
        except ValueError:
            continue
        if dest == ip and gateway == 0:
            devices.append(tokens[0])
    return devices


def _call(call: bytes) -> bytes:
    return bytes(call[:AXLEN]).ljust(AXLEN, b"\0")


def _ax25_routes_struct(port: bytes, dest: bytes, digis: Iterable[bytes]) -> bytes:
    digis = [_call(d) for d in list(digis)[:AX25_MAX_DIGIS]]
    packed = b"".join(digis).ljust(AX25_MAX_DIGIS * AXLEN, b"\0")
    return struct.pack("=7s7sB56s", _call(port), _call(dest), len(digis), packed)


class KernelRoutes:
    """Applies route changes for the configured ports.

    ``set_*`` methods return False when the port does not allow the change and
    raise KernelRouteError when it failed; ``del_*`` methods return success.
    """

    def __init__(
        self,
        configs: list[PortConfig],
        iproute2_table: str = "",
        route_file: str = PROC_IP_ROUTE_FILE,
    ) -> None:
        self.configs = configs
        self.iproute2_table = iproute2_table
        self.route_file = route_file

    @staticmethod
    def _run(command: list[str]) -> bool:
        try:
            return subprocess.run(command, check=False).returncode == 0
        except OSError as exc:
            logger.warning("%s: %s", command[0], exc)
            return False

    @staticmethod
    def _ax25_ioctl(request: int, data: bytes) -> None:
        with socket.socket(AF_AX25, socket.SOCK_SEQPACKET) as sock:
            fcntl.ioctl(sock.fileno(), request, data)

    def set_arp(self, config: PortConfig, ip: int, call: bytes) -> bool:
        """Install a permanent ARP entry mapping ``ip`` to ``call`` on the port."""
        if not config.ip_add_arp:
            return False
        protocol = struct.pack("=HH4s8x", socket.AF_INET, 0, (ip & 0xFFFFFFFF).to_bytes(4, "little"))
        hardware = struct.pack("=H7s3xi", AF_AX25, _call(call), 0)
        dev = config.dev.encode()[:IFNAMSIZ - 1].ljust(IFNAMSIZ, b"\0")
        request = struct.pack("=16s16si16s16s", protocol, hardware, ATF_PERM | ATF_COM, bytes(16), dev)
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                fcntl.ioctl(sock.fileno(), SIOCSARP, request)
        except OSError as exc:
            raise KernelRouteError(f"SIOCSARP: {exc}") from exc
        return True

    def set_route(self, config: PortConfig, ip: int) -> bool:
        """Install a host route to ``ip`` via the port, replacing routes on managed ports."""
        try:
            with open(self.route_file, encoding="latin-1") as handle:
                text = handle.read()
        except OSError as exc:
            raise KernelRouteError(f"{self.route_file}: {exc}") from exc

        for dev in find_conflicting_routes(text, ip):
            if find_config(self.configs, dev) is None:
                raise KernelRouteError(
                    f"route to {dotted_quad(ip)} exists on unmanaged device {dev}"
                )
            self.del_ip_route(dev, ip)

        if not config.ip_add_route:
            return False
        command = iproute2_command(ip, config.dev, self.iproute2_table, True)
        if not self.iproute2_table and config.tcp_irtt:
            command += ["rtt", f"{config.tcp_irtt}ms"]
        if not self._run(command):
            raise KernelRouteError(f"adding route to {dotted_quad(ip)} on {config.dev} failed")
        return True

    def del_ip_route(self, dev: str, ip: int) -> bool:
        """Delete the host route to ``ip`` on ``dev`` if that port manages routes."""
        config = find_config(self.configs, dev)
        if config is None or not config.ip_add_route:
            return False
        return self._run(iproute2_command(ip, dev, self.iproute2_table, False))

    def set_ax25_route(self, config: PortConfig, route: Ax25Route) -> bool:
        """Install the digipeater path of ``route`` in the AX.25 routing table."""
        if not config.ax25_add_route:
            return False
        if not config.mycalls:
            raise KernelRouteError(f"no callsign for port {config.port}")
        data = _ax25_routes_struct(config.mycalls[0], route.call, route.digipeaters)
        try:
            self._ax25_ioctl(SIOCADDRT, data)
        except OSError as exc:
            raise KernelRouteError(f"AX.25 SIOCADDRT: {exc}") from exc
        return True

    def del_ax25_route(self, dev: str, call: bytes) -> bool:
        """Delete the AX.25 route to ``call`` on ``dev`` if that port manages routes."""
        config = find_config(self.configs, dev)
        if config is None or not config.ax25_add_route or not config.mycalls:
            return False
        try:
            self._ax25_ioctl(SIOCDELRT, _ax25_routes_struct(config.mycalls[0], call, []))
        except OSError as exc:
            logger.warning("AX.25 SIOCDELRT: %s", exc)
            return False
        return True

    def set_ipmode(self, config: PortConfig, call: bytes, ipmode: bool) -> bool:
        """Set virtual-circuit (True) or datagram (False) IP mode for ``call``."""
        if not config.ip_adjust_mode:
            return False
        if not config.mycalls:
            raise KernelRouteError(f"no callsign for port {config.port}")
        data = struct.pack(
            "=7s7s2xii",
            _call(config.mycalls[0]),
            _call(call),
            AX25_SET_RT_IPMODE,
            ord("V" if ipmode else "D"),
        )
        try:
            self._ax25_ioctl(SIOCAX25OPTRT, data)
        except OSError as exc:
            raise KernelRouteError(f"SIOCAX25OPTRT: {exc}") from exc
        return True
"""Cache of learned IP and AX.25 routes, most recently heard first."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Iterable, Protocol

from hamax25.callsign import decode_callsign
from hamax25.rtd.portconfig import (
    AX25_MAXROUTES,
    AXLEN,
    IP_MAXROUTES,
    PortConfig,
    find_config,
)


class Action(enum.IntFlag):
    """What changed in the cache and must be pushed to the kernel."""

    NONE = 0
    NEW_ARP = 1
    NEW_ROUTE = 2
    NEW_IPMODE = 4


def dotted_quad(ip: int) -> str:
    """Format an address stored with its first octet in the low byte."""
    return ".".join(str(b) for b in (ip & 0xFFFFFFFF).to_bytes(4, "little"))


@dataclass
class IpRoute:
    """A learned IP host route: the address is reached via ``call`` on ``iface``."""

    ip: int
    iface: str
    call: bytes
    ipmode: bool
    timestamp: int
    invalid: bool = False

    @property
    def address(self) -> str:
        return dotted_quad(self.ip)


@dataclass
class Ax25Route:
    """A learned AX.25 path to ``call`` on ``iface``."""

    iface: str
    call: bytes
    digipeaters: tuple[bytes, ...]
    timestamp: int


class KernelHooks(Protocol):
    def del_ip_route(self, dev: str, ip: int) -> bool: ...

    def del_ax25_route(self, dev: str, call: bytes) -> bool: ...


class RouteCache:
    """Bounded most-recently-used lists of IP and AX.25 routes.

    A timestamp of 0 marks a permanent entry that learned data never replaces.
    """

    def __init__(
        self,
        ip_max: int = IP_MAXROUTES,
        ax25_max: int = AX25_MAXROUTES,
        kernel: KernelHooks | None = None,
    ) -> None:
        self.ip_max = ip_max
        self.ax25_max = ax25_max
        self.kernel = kernel
        self._ip: list[IpRoute] = []
        self._ax25: list[Ax25Route] = []

    @property
    def ip_routes(self) -> list[IpRoute]:
        return list(self._ip)

    @property
    def ax25_routes(self) -> list[Ax25Route]:
        return list(self._ax25)

    def update_ip_route(
        self, config: PortConfig, ip: int, ipmode: bool, call: bytes, timestamp: int
    ) -> Action:
        """Record that ``ip`` was heard via ``call``; return what changed."""
        if not config.in_subnet(ip):
            return Action.NONE
        call = bytes(call[:AXLEN])
        ipmode = bool(ipmode)

        for index, route in enumerate(self._ip):
            if route.ip != ip:
                continue
            if route.timestamp == 0 and timestamp != 0:
                return Action.NONE
            action = Action.NONE
            if route.iface != config.dev:
                action |= Action.NEW_ROUTE
                route.iface = config.dev
            if route.call != call:
                action |= Action.NEW_ARP
                route.call = call
            if route.ipmode != ipmode:
                action |= Action.NEW_IPMODE
                route.ipmode = ipmode
            route.timestamp = timestamp
            del self._ip[index]
            self._ip.insert(0, route)
            return action

        if len(self._ip) >= self.ip_max:
            if not self._ip:
                return Action.NONE
            self._ip.pop()
        self._ip.insert(0, IpRoute(ip, config.dev, call, ipmode, timestamp))
        return Action.NEW_ROUTE | Action.NEW_ARP | Action.NEW_IPMODE

    def update_ax25_route(
        self,
        config: PortConfig,
        call: bytes,
        digipeaters: Iterable[bytes],
        timestamp: int,
    ) -> Ax25Route | None:
        """Record a path to ``call``; return the route if the kernel needs updating."""
        call = bytes(call[:AXLEN])
        digis = tuple(bytes(d[:AXLEN]) for d in digipeaters)

        for index, route in enumerate(self._ax25):
            if route.call != call:
                continue
            if route.timestamp == 0 and timestamp != 0:
                return None
            changed = False
            if route.iface != config.dev:
                if self.kernel is not None:
                    self.kernel.del_ax25_route(route.iface, route.call)
                route.iface = config.dev
                changed = True
            if route.digipeaters != digis:
                route.digipeaters = digis
                changed = True
            route.timestamp = timestamp
            del self._ax25[index]
            self._ax25.insert(0, route)
            return route if changed else None

        if len(self._ax25) >= self.ax25_max:
            if not self._ax25:
                return None
            self._ax25.pop()
        route = Ax25Route(config.dev, call, digis, timestamp)
        self._ax25.insert(0, route)
        return route

    def _remove_ip(self, route: IpRoute) -> None:
        self._ip.remove(route)
        if self.kernel is not None:
            self.kernel.del_ip_route(route.iface, route.ip)

    def _remove_ax25(self, route: Ax25Route) -> None:
        self._ax25.remove(route)
        for ip_route in [r for r in self._ip if r.call == route.call]:
            self._remove_ip(ip_route)
        if self.kernel is not None:
            self.kernel.del_ax25_route(route.iface, route.call)

    def del_ip_route(self, ip: int) -> bool:
        """Remove the route for ``ip``; return True if there was one."""
        if ip == 0:
            return False
        for route in self._ip:
            if route.ip == ip:
                self._remove_ip(route)
                return True
        return False

    def invalidate_ip_route(self, ip: int) -> bool:
        """Mark the route for ``ip`` invalid; return True if there was one."""
        for route in self._ip:
            if route.ip == ip:
                route.invalid = True
                return True
        return False

    def del_ax25_route(self, config: PortConfig, call: bytes) -> bool:
        """Remove the route to ``call`` on the port, and IP routes through it."""
        call = bytes(call[:AXLEN])
        for route in self._ax25:
            if route.call == call and route.iface == config.dev:
                self._remove_ax25(route)
                return True
        return False

    @staticmethod
    def _expired(timestamp: int, seconds: int, now: float) -> bool:
        return timestamp != 0 and timestamp + seconds <= now

    def expire_ax25_routes(self, seconds: int, now: float | None = None) -> int:
        """Remove learned AX.25 routes older than ``seconds``; return how many."""
        now = time.time() if now is None else now
        stale = [r for r in self._ax25 if self._expired(r.timestamp, seconds, now)]
        for route in stale:
            if route in self._ax25:
                self._remove_ax25(route)
        return len(stale)

    def expire_ip_routes(self, seconds: int, now: float | None = None) -> int:
        """Remove learned IP routes older than ``seconds``; return how many."""
        now = time.time() if now is None else now
        stale = [r for r in self._ip if self._expired(r.timestamp, seconds, now)]
        for route in stale:
            self._remove_ip(route)
        return len(stale)

    @staticmethod
    def _device(configs: list[PortConfig], iface: str, as_commands: bool) -> str:
        if as_commands:
            return iface
        config = find_config(configs, iface)
        return config.port if config is not None else iface

    def dump_ip_routes(self, configs: Iterable[PortConfig], as_commands: bool) -> str:
        """Return the IP routes as a listing, or as ``add ip`` commands."""
        configs = list(configs)
        lines = []
        for route in self._ip:
            prefix = "add ip " if as_commands else ""
            dev = self._device(configs, route.iface, as_commands)
            mode = "X" if route.invalid else ("v" if route.ipmode else "d")
            lines.append(
                f"{prefix}{route.address} {dev:<4} {route.timestamp:08x} "
                f"{decode_callsign(route.call):<9} {mode}\n"
            )
        if not as_commands:
            lines.append(".\n")
        return "".join(lines)

    def dump_ax25_routes(self, configs: Iterable[PortConfig], as_commands: bool) -> str:
        """Return the AX.25 routes as a listing, or as ``add ax25`` commands."""
        configs = list(configs)
        lines = []
        for route in self._ax25:
            prefix = "add ax25 " if as_commands else ""
            dev = self._device(configs, route.iface, as_commands)
            digis = "".join(f" {decode_callsign(d)}" for d in route.digipeaters)
            lines.append(
                f"{prefix}{decode_callsign(route.call):<9} {dev:<4} "
                f"{route.timestamp:08x}{digis}\n"
            )
        if not as_commands:
            lines.append(".\n")
        return "".join(lines)
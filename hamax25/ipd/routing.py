"""Routing table mapping AX.25 callsigns to IP peers."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from hamax25.callsign import addrmatch, decode_callsign, normalize_callsign
from hamax25.ipd.settings import logger


class RouteFlags(enum.IntFlag):
    """Flags attached to a route."""

    NONE = 0
    BCAST = 1
    DEFAULT = 2


@dataclass(frozen=True)
class Route:
    """One route: a callsign reached through an IP address, over IP or UDP."""

    callsign: bytes
    ip: str
    udp_port: int = 0
    flags: RouteFlags = RouteFlags.NONE

    @property
    def protocol(self) -> str:
        return "udp" if self.udp_port else "ip"


class RoutingTable:
    """Ordered routes, an optional default route and broadcast addresses."""

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._default: Route | None = None
        self._broadcasts: list[bytes] = []

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self):
        return iter(self._routes)

    @property
    def default_route(self) -> Route | None:
        return self._default

    def add(self, ip: str, call: bytes, udp_port: int, flags: int) -> Route:
        """Append a route and return it; a DEFAULT route becomes the fallback."""
        route = Route(
            callsign=normalize_callsign(call),
            ip=ip,
            udp_port=udp_port & 0xFFFF,
            flags=RouteFlags(flags),
        )
        if route.flags & RouteFlags.DEFAULT:
            self._default = route
        self._routes.append(route)
        logger.debug(
            "added route: %s %s %s %d %d",
            decode_callsign(route.callsign),
            route.ip,
            route.protocol,
            route.udp_port,
            int(route.flags),
        )
        return route

    def add_broadcast(self, call: bytes) -> None:
        """Register a broadcast destination address."""
        normalized = normalize_callsign(call)
        self._broadcasts.append(normalized)
        logger.debug("added broadcast address: %s", decode_callsign(normalized))

    def lookup(self, call: bytes) -> Route | None:
        """Return the route for ``call``, the default route, or None."""
        wanted = normalize_callsign(call)
        for route in self._routes:
            if addrmatch(wanted, route.callsign):
                return route
        return self._default

    def is_broadcast(self, call: bytes) -> bool:
        """Return True if ``call`` is a registered broadcast address."""
        wanted = normalize_callsign(call)
        return any(addrmatch(wanted, bcast) for bcast in self._broadcasts)

    def broadcast_routes(self) -> list[Route]:
        """Return the routes that receive broadcast traffic, in table order."""
        return [r for r in self._routes if r.flags & RouteFlags.BCAST]

    def dump(self) -> str:
        """Return the routing table as printable text."""
        lines = [f"\n{len(self._routes)} active routes."]
        lines.extend(
            f"  {decode_callsign(r.callsign)}\t{r.ip}\t{r.protocol}\t{r.udp_port}\t{int(r.flags)}"
            for r in self._routes
        )
        return "\n".join(lines) + "\n"
"""Control commands and frame listening of the AX.25 route learning daemon.

Commands accepted on the control socket and in the cache files:

    add ax25 <callsign> <dev> <time> [<digipeater> ...]
    add ip   <ip> <dev> <time> <call> <mode>
    del ax25 <callsign> <dev>
    del ip   <ip>
    list ax25|ip
    reload
    save
    expire <minutes>
    shutdown
    version
    quit

``<dev>`` may be a network device name or a port name; the device name
takes precedence.
"""

from __future__ import annotations

import logging
import os
import re
import socket
import sys
from typing import Iterable

from hamax25.callsign import CallsignError, encode_callsign
from hamax25.rtd.cache import Action, Ax25Route, RouteCache
from hamax25.rtd.frames import HeardFrame, parse_frame
from hamax25.rtd.kernel import KernelRouteError
from hamax25.rtd.portconfig import AX25_MAX_DIGIS, PID_IP, PortConfig, find_config
from hamax25.rtd.rtdconf import RtdOptions, prepare_cmdline, split_args

VERSION = "1.0.0"
AXRT_CACHE_FILE = "/var/ax25/ax25rtd/ax25_route"
IPRT_CACHE_FILE = "/var/ax25/ax25rtd/ip_route"

logger = logging.getLogger("hamax25.ax25rtd")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_HEX = re.compile(r"\s*(?:0[xX])?([0-9a-fA-F]+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _parse_hex(text: str) -> int:
    match = _LEADING_HEX.match(text)
    return int(match.group(1), 16) if match else 0


def _asc2ip(text: str) -> int:
    try:
        return int.from_bytes(socket.inet_aton(text), "little")
    except OSError:
        return 0


def _asc2ax(text: str) -> bytes | None:
    try:
        return encode_callsign(text)
    except CallsignError:
        logger.warning("invalid callsign %s", text)
        return None


class RouteDaemon:
    """Learns routes from heard frames and carries out control commands.

    ``shutdown_requested``, ``reload_requested`` and ``close_requested`` are
    raised by the matching commands for the main loop to act on.
    """

    def __init__(
        self,
        configs: list[PortConfig],
        options: RtdOptions | None = None,
        cache: RouteCache | None = None,
        kernel=None,
    ) -> None:
        self.configs = configs
        self.options = options if options is not None else RtdOptions()
        self.kernel = kernel
        self.cache = cache if cache is not None else RouteCache(
            self.options.ip_maxroutes, self.options.ax25_maxroutes, kernel
        )
        self.ax25_cache_path = AXRT_CACHE_FILE
        self.ip_cache_path = IPRT_CACHE_FILE
        self.shutdown_requested = False
        self.reload_requested = False
        self.close_requested = False

    # -- applying changes -------------------------------------------------

    def _install_ax25(self, config: PortConfig, route: Ax25Route | None) -> None:
        if route is None or self.kernel is None:
            return
        try:
            self.kernel.set_ax25_route(config, route)
        except KernelRouteError as exc:
            logger.warning("%s", exc)

    def _apply_ip(
        self, config: PortConfig, ip: int, ipmode: bool, call: bytes, stamp: int
    ) -> Action:
        if self.options.ip_encaps_dev:
            config = find_config(self.configs, self.options.ip_encaps_dev)
            if config is None:
                logger.warning("no config for %s", self.options.ip_encaps_dev)
                return Action.NONE

        action = self.cache.update_ip_route(config, ip, ipmode, call, stamp)
        if self.kernel is None:
            return action
        try:
            if action & Action.NEW_ROUTE:
                self.kernel.set_route(config, ip)
            if action & Action.NEW_ARP:
                self.kernel.set_arp(config, ip, call)
        except KernelRouteError as exc:
            logger.warning("%s", exc)
            self.cache.invalidate_ip_route(ip)
            return action
        if action & Action.NEW_IPMODE:
            try:
                self.kernel.set_ipmode(config, call, ipmode)
            except KernelRouteError as exc:
                logger.warning("%s", exc)
        return action

    # -- commands ---------------------------------------------------------

    def _add(self, args: list[str]) -> None:
        if len(args) < 4:
            return
        kind, target, dev, stamp_text = args[:4]
        config = find_config(self.configs, dev)
        if config is None:
            return
        stamp = _parse_hex(stamp_text)
        rest = args[4:]

        if kind == "ax25":
            call = _asc2ax(target)
            digis = [_asc2ax(word) for word in rest[:AX25_MAX_DIGIS]]
            if call is None or any(d is None for d in digis):
                return
            route = self.cache.update_ax25_route(config, call, digis, stamp)
            self._install_ax25(config, route)
        elif kind == "ip":
            if len(rest) < 2:
                return
            ip = _asc2ip(target)
            call_text, mode = rest[:2]
            if mode.startswith("x"):
                return
            call = _asc2ax(call_text)
            if call is None:
                return
            self._apply_ip(config, ip, mode.startswith("v"), call, stamp)

    def _del(self, args: list[str]) -> None:
        if len(args) < 2:
            return
        kind, target = args[:2]
        if kind == "ax25":
            if len(args) < 3:
                return
            config = find_config(self.configs, args[2])
            call = _asc2ax(target)
            if config is None or call is None:
                return
            self.cache.del_ax25_route(config, call)
        elif kind == "ip":
            self.cache.del_ip_route(_asc2ip(target))

    def interpret(self, line: str, now: float | None = None) -> str:
        """Carry out one command line; return the reply to send back, if any."""
        words = split_args(prepare_cmdline(line))
        if not words:
            return ""
        cmd, args = words[0], words[1:]

        if cmd == "add":
            self._add(args)
        elif cmd == "del":
            self._del(args)
        elif cmd == "expire":
            if args:
                minutes = _atoi(args[0])
                if minutes != 0:
                    seconds = minutes * 60
                    self.cache.expire_ax25_routes(seconds, now)
                    self.cache.expire_ip_routes(seconds, now)
        elif cmd == "reload":
            self.reload_requested = True
        elif cmd == "list":
            if args and args[0] == "ax25":
                return self.cache.dump_ax25_routes(self.configs, False)
            if args and args[0] == "ip":
                return self.cache.dump_ip_routes(self.configs, False)
        elif cmd == "shutdown":
            self.save_cache(self.ax25_cache_path, self.ip_cache_path)
            self.shutdown_requested = True
        elif cmd == "save":
            self.save_cache(self.ax25_cache_path, self.ip_cache_path)
        elif cmd == "version":
            return f"ax25rtd version {VERSION}\n"
        elif cmd == "quit":
            self.close_requested = True
        return ""

    # -- listening --------------------------------------------------------

    def receive(self, dev: str, packet: bytes, now: float) -> HeardFrame | None:
        """Learn routes from a packet heard on ``dev``; return the parsed frame."""
        config = find_config(self.configs, dev)
        if config is None:
            return None
        frame = parse_frame(packet)
        if frame is None:
            return None
        stamp = int(now)
        mine = config.is_mycall(frame.dest)

        if mine or not config.ax25_for_me:
            digis = list(frame.digipeaters)
            if not mine and not digis and config.ax25_add_default:
                path = list(config.ax25_default_path)
                digis = [] if frame.source in path else path
            route = self.cache.update_ax25_route(config, frame.source, digis, stamp)
            self._install_ax25(config, route)

        if frame.pid == PID_IP and not mine:
            return frame
        if frame.ip:
            self._apply_ip(config, frame.ip, frame.ipmode, frame.source, stamp)
        return frame

    # -- cache files ------------------------------------------------------

    def load_cache(self, ax25_path: str, ip_path: str) -> int:
        """Replay the saved cache files; return how many lines were read."""
        count = 0
        for path, what in ((ax25_path, "AX.25"), (ip_path, "IP")):
            try:
                with open(path, encoding="latin-1") as handle:
                    lines: Iterable[str] = handle.readlines()
            except OSError as exc:
                logger.warning("open %s route cache file: %s", what, exc)
                continue
            for line in lines:
                count += 1
                reply = self.interpret(line)
                if reply:
                    sys.stderr.write(reply)
        return count

    def save_cache(self, ax25_path: str, ip_path: str) -> None:
        """Write the cache as commands that ``load_cache`` can replay."""
        for path, text in (
            (ax25_path, self.cache.dump_ax25_routes(self.configs, True)),
            (ip_path, self.cache.dump_ip_routes(self.configs, True)),
        ):
            try:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o664)
                with os.fdopen(fd, "w", encoding="latin-1") as handle:
                    handle.write(text)
            except OSError as exc:
                logger.warning("saving %s: %s", path, exc)
"""Entry point of the AX.25 route learning daemon."""

from __future__ import annotations

import fcntl
import logging
import os
import select
import signal
import socket
import struct
import sys
import time

from hamax25.callsign import decode_callsign
from hamax25.rtd.cache import RouteCache
from hamax25.rtd.commands import AXRT_CACHE_FILE, IPRT_CACHE_FILE, RouteDaemon
from hamax25.rtd.kernel import KernelRoutes
from hamax25.rtd.portconfig import PortConfig
from hamax25.rtd.rtdconf import RtdOptions, apply_listeners, parse_config

CONF_FILE = "/etc/ax25/ax25rtd.conf"
AXPORTS_FILE = "/etc/ax25/axports"
CONTROL_SOCKET = "/var/ax25/ax25rtd/control"
PROC_AX25_FILE = "/proc/net/ax25"

ETH_P_AX25 = 0x0002
ARPHRD_AX25 = 3
IFF_UP = 0x0001
SIOCGIFFLAGS = 0x8913
SIOCGIFADDR = 0x8915
SIOCGIFNETMASK = 0x891B
SIOCGIFHWADDR = 0x8927
IFNAMSIZ = 16

logger = logging.getLogger("hamax25.ax25rtd")


def dump_config(configs: list[PortConfig]) -> str:
    """Return a readable dump of the port configurations."""
    out = ["config:\n"]
    for c in configs:
        out.append(f"Device           = {c.dev}\n")
        out.append(f"Port             = {c.port}\n")
        out.append(f"ax25_add_route   = {int(c.ax25_add_route)}\n")
        out.append(f"ax25_for_me      = {int(c.ax25_for_me)}\n")
        out.append(f"ax25_add_default = {int(c.ax25_add_default)}\n")
        out.append(f"ip_add_route     = {int(c.ip_add_route)}\n")
        out.append(f"ip_add_arp       = {int(c.ip_add_arp)}\n")
        out.append(f"ip_adjust_mode   = {int(c.ip_adjust_mode)}\n")
        out.append(f"netmask          = {c.netmask:08x}\n")
        out.append(f"ip               = {c.ip:08x}\n")
        out.append(f"nmycalls         = {len(c.mycalls)}\n")
        out.append("calls            =" + "".join(f" {decode_callsign(m)}" for m in c.mycalls) + "\n")
        out.append(
            "ax25_default_path="
            + "".join(f" {decode_callsign(d)}" for d in c.ax25_default_path)
            + "\n.\n"
        )
    return "".join(out)


def _parse_axports(text: str) -> dict[str, str]:
    """Map port names to callsigns from axports text."""
    ports: dict[str, str] = {}
    for line in text.splitlines():
        words = line.split()
        if len(words) < 2 or words[0].startswith("#"):
            continue
        ports.setdefault(words[0], words[1])
    return ports


def _ifreq(name: str) -> bytes:
    return name.encode()[:IFNAMSIZ - 1].ljust(IFNAMSIZ, b"\0") + bytes(24)


def _if_ipv4(sock: socket.socket, request: int, name: str) -> int:
    try:
        result = fcntl.ioctl(sock.fileno(), request, _ifreq(name))
    except OSError:
        return 0
    return int.from_bytes(result[20:24], "little")


def _bind_devices(configs: list[PortConfig]) -> list[PortConfig]:
    """Attach each port to the AX.25 interface carrying its callsign; drop unbound ports."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        for _, name in socket.if_nameindex():
            if name == "lo":
                continue
            try:
                flags = struct.unpack_from("H", fcntl.ioctl(sock.fileno(), SIOCGIFFLAGS, _ifreq(name)), 16)[0]
                hw = fcntl.ioctl(sock.fileno(), SIOCGIFHWADDR, _ifreq(name))
            except OSError as exc:
                logger.warning("%s: %s", name, exc)
                continue
            if not flags & IFF_UP:
                continue
            if struct.unpack_from("H", hw, 16)[0] != ARPHRD_AX25:
                continue
            hwcall = bytes(hw[18:25])
            for config in configs:
                if config.dev or not config.mycalls:
                    continue
                mine = config.mycalls[0]
                if mine[:6] == hwcall[:6] and (mine[6] & 0x1E) == (hwcall[6] & 0x1E):
                    config.dev = name
                    config.ip = _if_ipv4(sock, SIOCGIFADDR, name)
                    config.netmask = _if_ipv4(sock, SIOCGIFNETMASK, name)
                    break
    return [config for config in configs if config.dev]


def _load(port_calls: dict[str, str]) -> tuple[list[PortConfig], RtdOptions]:
    try:
        with open(CONF_FILE, encoding="latin-1") as handle:
            text = handle.read()
    except OSError:
        raise RuntimeError(f"config file {CONF_FILE} not found") from None
    configs, options = parse_config(text, port_calls)
    configs = _bind_devices(configs)
    try:
        with open(PROC_AX25_FILE, encoding="latin-1") as handle:
            proc = handle.read()
    except OSError:
        raise RuntimeError("No AX.25 in kernel. Tss, tss...") from None
    apply_listeners(configs, proc)
    return configs, options


def _reload(daemon: RouteDaemon, port_calls: dict[str, str]) -> None:
    try:
        configs, options = _load(port_calls)
    except RuntimeError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from None
    daemon.configs[:] = configs
    daemon.options = options
    daemon.cache.ip_max = options.ip_maxroutes
    daemon.cache.ax25_max = options.ax25_maxroutes
    if isinstance(daemon.kernel, KernelRoutes):
        daemon.kernel.iproute2_table = options.iproute2_table


def _debug_report(daemon: RouteDaemon) -> str:
    return (
        "config:\n" + dump_config(daemon.configs)
        + "ip-routes:\n" + daemon.cache.dump_ip_routes(daemon.configs, False)
        + "ax25-routes:\n" + daemon.cache.dump_ax25_routes(daemon.configs, False)
    )


def _install_handlers(daemon: RouteDaemon) -> None:
    def on_hup(signum, frame):
        daemon.reload_requested = True

    def on_usr1(signum, frame):
        sys.stderr.write(_debug_report(daemon))

    def on_term(signum, frame):
        daemon.save_cache(daemon.ax25_cache_path, daemon.ip_cache_path)
        raise SystemExit(0)

    signal.signal(signal.SIGHUP, on_hup)
    signal.signal(signal.SIGUSR1, on_usr1)
    signal.signal(signal.SIGTERM, on_term)


def _serve(daemon: RouteDaemon, monitor: socket.socket, control: socket.socket,
           port_calls: dict[str, str]) -> int:
    conn: socket.socket | None = None
    try:
        while True:
            readers = [monitor, conn if conn is not None else control]
            try:
                ready = select.select(readers, [], [])[0]
            except InterruptedError:
                continue

            if conn is not None:
                if conn in ready:
                    try:
                        data = conn.recv(256)
                    except OSError:
                        data = b""
                    if data:
                        for line in data.decode("latin-1").splitlines():
                            reply = daemon.interpret(line)
                            if reply:
                                try:
                                    conn.sendall(reply.encode("latin-1"))
                                except OSError:
                                    break
                        if daemon.shutdown_requested:
                            return 0
                    if not data or daemon.close_requested:
                        conn.close()
                        conn = None
                        daemon.close_requested = False
            elif control in ready:
                conn, _ = control.accept()

            if daemon.reload_requested:
                daemon.reload_requested = False
                _reload(daemon, port_calls)

            if monitor in ready:
                try:
                    packet, address = monitor.recvfrom(1500)
                except OSError as exc:
                    logger.error("recvfrom: %s", exc)
                    daemon.save_cache(daemon.ax25_cache_path, daemon.ip_cache_path)
                    return 1
                daemon.receive(address[0], packet, time.time())
    finally:
        if conn is not None:
            conn.close()
        control.close()
        monitor.close()
        try:
            os.unlink(CONTROL_SOCKET)
        except OSError:
            pass


def main(argv: list[str] | None = None) -> int:
    """Run the route learning daemon; return the exit status."""
    logging.basicConfig(level=logging.WARNING, format="ax25rtd: %(message)s")
    try:
        with open(AXPORTS_FILE, encoding="latin-1") as handle:
            port_calls = _parse_axports(handle.read())
    except OSError:
        port_calls = {}
    if not port_calls:
        print("ax25rtd: no AX.25 port configured", file=sys.stderr)
        return 1

    try:
        configs, options = _load(port_calls)
    except RuntimeError as exc:
        print(exc, file=sys.stderr)
        return 1

    kernel = KernelRoutes(configs, options.iproute2_table)
    cache = RouteCache(options.ip_maxroutes, options.ax25_maxroutes, kernel)
    daemon = RouteDaemon(configs, options, cache, kernel)
    daemon.load_cache(AXRT_CACHE_FILE, IPRT_CACHE_FILE)

    if os.fork():
        return 0

    try:
        monitor = socket.socket(socket.AF_PACKET, socket.SOCK_RAW, socket.htons(ETH_P_AX25))
    except OSError as exc:
        print(f"AX.25 socket: {exc}", file=sys.stderr)
        return 1

    control = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        os.unlink(CONTROL_SOCKET)
    except OSError:
        pass
    try:
        control.bind(CONTROL_SOCKET)
    except OSError as exc:
        print(f"bind Control socket: {exc}", file=sys.stderr)
        control.close()
        monitor.close()
        return 1
    os.chmod(CONTROL_SOCKET, 0o600)
    control.listen(1)

    _install_handlers(daemon)
    return _serve(daemon, monitor, control, port_calls)


if __name__ == "__main__":
    sys.exit(main())
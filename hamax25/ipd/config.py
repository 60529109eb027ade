"""Reading and checking the AX.25-over-IP daemon configuration file."""

from __future__ import annotations

import re
import socket
from typing import Iterator

from hamax25.callsign import CallsignError, decode_callsign, encode_callsign
from hamax25.ipd.kiss import ParamTable
from hamax25.ipd.routing import RouteFlags, RoutingTable
from hamax25.ipd.settings import CONF_AX25IPD_FILE, DEFAULT_UDP_PORT, Settings

MISSING_ARGUMENT = "Missing argument"
BAD_CALLSIGN = "Bad callsign format"
BAD_MODE = "Bad option - tnc/digi"
HOST_NOT_KNOWN = "Host not known"
UNKNOWN_COMMAND = "Unknown command"
TEXT_TOO_LONG = "Text string too long"
BAD_BEACON = "Bad option - every/after"
BAD_SOCKET = "Bad option - ip/udp"

BEACON_TEXT_SIZE = 128
_LINE_CHUNK = 254
_DELIMITERS = " \t\n\r"
_SPLIT = re.compile(r"[ \t\n\r]+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ConfigError(ValueError):
    """Raised for an invalid or unusable configuration."""


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class _Args:
    def __init__(self, tokens: list[str]) -> None:
        self._tokens = iter(tokens)

    def optional(self) -> str | None:
        return next(self._tokens, None)

    def required(self) -> str:
        token = self.optional()
        if token is None:
            raise ConfigError(MISSING_ARGUMENT)
        return token

    def __iter__(self) -> Iterator[str]:
        return self._tokens


def _callsign(text: str) -> bytes:
    try:
        return encode_callsign(text)
    except CallsignError as exc:
        raise ConfigError(BAD_CALLSIGN) from exc


def _beacon_text(line: str) -> str:
    start = len(line) - len(line.lstrip(_DELIMITERS))
    rest = line[start + len("btext") + 1:]
    if len(rest) < 2:
        raise ConfigError(MISSING_ARGUMENT)
    if len(rest) > BEACON_TEXT_SIZE:
        raise ConfigError(TEXT_TOO_LONG)
    return rest[:-1][:BEACON_TEXT_SIZE - 1]


def _resolve(host: str) -> str:
    try:
        return socket.gethostbyname(host)
    except (OSError, UnicodeError) as exc:
        raise ConfigError(HOST_NOT_KNOWN) from exc


def _parse_route(settings: Settings, routes: RoutingTable, args: _Args) -> None:
    call = _callsign(args.required())
    ip = _resolve(args.required())
    uport = settings.udp_port
    flags = RouteFlags.NONE
    for token in args:
        if token == "udp":
            if uport == 0:
                uport = DEFAULT_UDP_PORT
            port = args.optional()
            if port is not None and _atoi(port) > 0:
                uport = _atoi(port)
        else:
            if "b" in token:
                flags |= RouteFlags.BCAST
            if "d" in token:
                flags |= RouteFlags.DEFAULT
    routes.add(ip, call, uport, flags)


def parse_line(settings: Settings, routes: RoutingTable, params: ParamTable, line: str) -> None:
    """Apply one configuration line; raise ConfigError if it is invalid."""
    args = _Args([t for t in _SPLIT.split(line) if t])
    command = args.optional()
    if command is None or command.startswith("#"):
        return

    if command == "mycall":
        settings.mycall = _callsign(args.required())
    elif command == "mycall2":
        settings.mycall2 = _callsign(args.required())
    elif command == "myalias":
        settings.myalias = _callsign(args.required())
        settings.dual_port = settings.mycall2[0] != 0
    elif command == "myalias2":
        settings.myalias2 = _callsign(args.required())
    elif command == "device":
        if not settings.ttydevice:
            settings.ttydevice = args.required()
    elif command == "symlink-pty":
        if not settings.ptysymlink:
            settings.ptysymlink = args.required()
    elif command == "mode":
        mode = args.required()
        if mode not in ("digi", "tnc"):
            raise ConfigError(BAD_MODE)
        settings.digi = mode == "digi"
    elif command == "speed":
        settings.ttyspeed = _atoi(args.required())
    elif command == "socket":
        kind = args.required()
        if kind == "ip":
            settings.ip_mode = True
        elif kind == "udp":
            settings.udp_mode = True
            settings.udp_port = DEFAULT_UDP_PORT
            port = args.optional()
            if port is not None and _atoi(port) > 0:
                settings.udp_port = _atoi(port) & 0xFFFF
        else:
            raise ConfigError(BAD_SOCKET)
    elif command == "beacon":
        when = args.required()
        if when not in ("every", "after"):
            raise ConfigError(BAD_BEACON)
        settings.beacon_every = when == "every"
        settings.beacon_interval = _atoi(args.required())
    elif command == "btext":
        settings.beacon_text = _beacon_text(line)
    elif command == "loglevel":
        settings.loglevel = _atoi(args.required())
    elif command == "route":
        _parse_route(settings, routes, args)
    elif command == "broadcast":
        for token in args:
            routes.add_broadcast(_callsign(token))
    elif command == "param":
        parameter = _atoi(args.required())
        value = _atoi(args.required())
        params.add(parameter, value)
    else:
        raise ConfigError(UNKNOWN_COMMAND)


def _physical_lines(lines: list[str]) -> Iterator[str]:
    for line in lines:
        for start in range(0, len(line), _LINE_CHUNK):
            yield line[start:start + _LINE_CHUNK]


def read_config(
    path: str | None, settings: Settings, routes: RoutingTable, params: ParamTable
) -> None:
    """Read the configuration file at ``path`` (or the default one) and validate it."""
    fname = path or CONF_AX25IPD_FILE
    try:
        with open(fname, encoding="latin-1") as handle:
            lines = handle.readlines()
    except OSError as exc:
        raise ConfigError(f"Config file {fname} not found or could not be opened") from exc

    errors = []
    for lineno, line in enumerate(_physical_lines(lines), 1):
        try:
            parse_line(settings, routes, params, line)
        except ConfigError as exc:
            errors.append(f"Config error at line {lineno}: {exc}\n{line.rstrip(chr(10))}")
    if errors:
        raise ConfigError("\n".join(errors))
    validate(settings)


def validate(settings: Settings) -> None:
    """Raise ConfigError if the settings are not enough to run."""
    if not settings.ttydevice:
        raise ConfigError("No device specified in config file")
    if not settings.udp_mode and not settings.ip_mode:
        raise ConfigError("Must specify ip and/or udp sockets")
    if settings.digi and settings.mycall[0] == 0:
        raise ConfigError("No mycall line in config file")
    if settings.digi and settings.dual_port and settings.mycall2[0] == 0:
        raise ConfigError("No mycall2 line in config file")


def dump_config(settings: Settings) -> str:
    """Return the current configuration as printable text."""
    lines = ["", "Current configuration:"]
    if settings.ip_mode:
        lines.append("  socket     ip")
    if settings.udp_mode:
        lines.append(f"  socket     udp on port {settings.udp_port}")
    lines.append(f"  mode       {'digi' if settings.digi else 'tnc'}")
    lines.append(f"  device     {settings.ttydevice}")
    lines.append(f"  speed      {settings.ttyspeed}")
    if settings.digi:
        lines.append(f"  mycall     {decode_callsign(settings.mycall)}")
    if settings.digi and settings.myalias[0]:
        lines.append(f"  myalias    {decode_callsign(settings.myalias)}")
    if settings.beacon_interval > 0:
        when = "every" if settings.beacon_every else "after"
        lines.append(f"  beacon     {when} {settings.beacon_interval}")
        lines.append(f"  btext      {settings.beacon_text}")
    lines.append(f"  loglevel   {settings.loglevel}")
    return "\n".join(lines) + "\n"
"""Configuration file of the AX.25 route learning daemon."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping

from hamax25.callsign import CallsignError, encode_callsign
from hamax25.rtd.portconfig import (
    AX25_MAX_DIGIS,
    AX25_MAXCALLS,
    AX25_MAXROUTES,
    IP_MAXROUTES,
    PortConfig,
    find_config,
)

logger = logging.getLogger("hamax25.ax25rtd")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_FLAG_OPTIONS = {
    "ax25-learn-routes": "ax25_add_route",
    "ax25-learn-only-mine": "ax25_for_me",
    "ip-learn-routes": "ip_add_route",
    "ip-adjust-mode": "ip_adjust_mode",
    "arp-add": "ip_add_arp",
}

_NUMBER_OPTIONS = {
    "irtt": "tcp_irtt",
    "dg-mtu": "dg_mtu",
    "vc-mtu": "vc_mtu",
}


@dataclass
class RtdOptions:
    """Settings that apply to the whole daemon rather than to one port."""

    ip_encaps_dev: str = ""
    ax25_maxroutes: int = AX25_MAXROUTES
    ip_maxroutes: int = IP_MAXROUTES
    iproute2_table: str = ""


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _asc2ax(text: str) -> bytes | None:
    try:
        return encode_callsign(text)
    except CallsignError:
        logger.warning("invalid callsign %s", text)
        return None


def prepare_cmdline(line: str) -> str:
    """Turn tabs into spaces, lower-case, and cut at a newline or ``#``."""
    out = []
    for ch in line:
        if ch == "\t":
            ch = " "
        ch = ch.lower()
        if ch in ("\n", "#"):
            break
        out.append(ch)
    return "".join(out)


def split_args(line: str) -> list[str]:
    """Split a prepared line into its space-separated words."""
    return [word for word in line.split(" ") if word]


def yesno(arg: str | None) -> bool | None:
    """Interpret yes/1 and no/0; a missing argument is False, anything else None."""
    if arg is None:
        return False
    if arg in ("yes", "1"):
        return True
    if arg in ("no", "0"):
        return False
    return None


def _port_option(config: PortConfig, cmd: str, args: list[str]) -> bool:
    arg = args[0] if args else None
    if cmd in _FLAG_OPTIONS:
        if arg is None:
            logger.warning("%s: argument missing", cmd)
            return True
        value = yesno(arg)
        if value is None:
            logger.warning("%s: invalid argument %s", cmd, arg)
        else:
            setattr(config, _FLAG_OPTIONS[cmd], value)
    elif cmd in _NUMBER_OPTIONS:
        if arg is None:
            logger.warning("%s: argument missing", cmd)
            return True
        value = _atoi(arg)
        if value == 0:
            logger.warning("%s: invalid argument %s", cmd, arg)
        else:
            setattr(config, _NUMBER_OPTIONS[cmd], value)
    elif cmd == "ax25-add-path":
        if arg is None or yesno(arg) is False:
            return True
        config.ax25_add_default = True
        path = [_asc2ax(a) for a in args[:AX25_MAX_DIGIS]]
        config.ax25_default_path = [call for call in path if call is not None]
    elif cmd == "ax25-more-mycalls":
        if arg is None:
            logger.warning("%s: argument missing", cmd)
            return True
        for word in args:
            if len(config.mycalls) >= AX25_MAXCALLS:
                break
            call = _asc2ax(word)
            if call is not None:
                config.add_mycall(call)
    else:
        return False
    return True


def _global_option(options: RtdOptions, cmd: str, args: list[str]) -> bool:
    if cmd not in ("ip-encaps-dev", "ax25-maxroutes", "ip-maxroutes", "iproute2-table"):
        return False
    if not args:
        logger.warning("%s: argument missing", cmd)
        return True
    arg = args[0]
    if cmd == "ip-encaps-dev":
        options.ip_encaps_dev = arg
    elif cmd == "ax25-maxroutes":
        options.ax25_maxroutes = _atoi(arg)
    elif cmd == "ip-maxroutes":
        options.ip_maxroutes = _atoi(arg)
    else:
        options.iproute2_table = arg
    return True


def parse_config(
    text: str, port_calls: Mapping[str, str]
) -> tuple[list[PortConfig], RtdOptions]:
    """Parse the configuration text.

    ``port_calls`` maps port names to their callsigns; sections for unknown
    ports are skipped. Returns the port configurations and global options.
    """
    calls = {name.lower(): call for name, call in port_calls.items()}
    configs: list[PortConfig] = []
    options = RtdOptions()
    current: PortConfig | None = None

    for raw in text.splitlines():
        words = split_args(prepare_cmdline(raw))
        if not words:
            continue
        cmd, args = words[0], words[1:]

        if cmd.startswith("["):
            name = cmd[1:]
            end = name.rfind("]")
            if end < 0:
                logger.warning("syntax error: [%s", name)
                continue
            name = name[:end]
            call_text = calls.get(name)
            if call_text is None:
                continue
            mycall = _asc2ax(call_text)
            if mycall is None:
                continue
            current = PortConfig(port=name, mycalls=[mycall])
            configs.append(current)
        elif current is not None and _port_option(current, cmd, args):
            continue
        elif not _global_option(options, cmd, args):
            logger.warning("invalid command %s", cmd)

    return configs, options


def apply_listeners(configs: list[PortConfig], proc_text: str) -> int:
    """Add callsigns listening for connections (from /proc/net/ax25) as own calls.

    Returns how many callsigns were added.
    """
    added = 0
    for line in proc_text.splitlines():
        words = line.split()
        if len(words) < 4 or words[3] != "*":
            continue
        device, call_text = words[1], words[2]
        call = _asc2ax(call_text)
        if call is None:
            continue
        if device == "*":
            targets = list(configs)
        else:
            config = find_config(configs, device)
            targets = [config] if config is not None else []
        added += sum(1 for config in targets if config.add_mycall(call))
    return added
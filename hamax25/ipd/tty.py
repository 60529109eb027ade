"""Serial line and pseudo-terminal helpers for the KISS side."""

from __future__ import annotations

import errno
import os
import termios

SUPPORTED_SPEEDS = (
    50, 75, 110, 134, 150, 200, 300, 600, 1200, 1800, 2400, 4800, 9600,
    19200, 38400, 57600, 76800, 115200, 153600, 230400, 307200, 460800,
    500000, 576000, 614400, 921600, 1000000, 1152000, 1500000, 2000000,
    2500000, 3000000, 3500000, 4000000,
)


def baud_constant(speed: int) -> int:
    """Return the termios speed constant for ``speed``; unknown speeds give 9600."""
    if speed in SUPPORTED_SPEEDS:
        value = getattr(termios, f"B{speed}", None)
        if value is not None:
            return value
    return termios.B9600


def create_safe_symlink(target: str, link: str) -> None:
    """Point ``link`` at ``target``, replacing ``link`` only if it is a symlink."""
    if os.path.lexists(link):
        if not os.path.islink(link):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), link)
        os.unlink(link)
    os.symlink(target, link)


def configure_raw_tty(fd: int, speed: int) -> None:
    """Put the terminal on ``fd`` into raw 8-bit mode at ``speed``."""
    attrs = termios.tcgetattr(fd)
    baud = baud_constant(speed)
    attrs[0] = 0
    attrs[1] = 0
    attrs[2] = baud | termios.CS8 | termios.CREAD | termios.CLOCAL
    attrs[3] = 0
    attrs[4] = baud
    attrs[5] = baud
    attrs[6][termios.VMIN] = 0
    attrs[6][termios.VTIME] = 0
    termios.tcsetattr(fd, termios.TCSANOW, attrs)
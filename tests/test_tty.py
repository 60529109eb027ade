import os
import termios

import pytest

from hamax25.ipd.tty import baud_constant, configure_raw_tty, create_safe_symlink


def test_baud_known_speeds():
    assert baud_constant(9600) == termios.B9600
    assert baud_constant(115200) == termios.B115200
    assert baud_constant(300) == termios.B300


def test_baud_unknown_speed_defaults():
    assert baud_constant(12345) == termios.B9600
    assert baud_constant(0) == termios.B9600


def test_symlink_created(tmp_path):
    link = tmp_path / "pty"
    create_safe_symlink("/dev/pts/7", str(link))
    assert os.readlink(link) == "/dev/pts/7"


def test_symlink_replaced(tmp_path):
    link = tmp_path / "pty"
    create_safe_symlink("/dev/pts/1", str(link))
    create_safe_symlink("/dev/pts/2", str(link))
    assert os.readlink(link) == "/dev/pts/2"


def test_symlink_refuses_regular_file(tmp_path):
    link = tmp_path / "pty"
    link.write_text("data")
    with pytest.raises(FileExistsError):
        create_safe_symlink("/dev/pts/3", str(link))
    assert link.read_text() == "data"


def test_configure_raw_tty():
    master, slave = os.openpty()
    try:
        configure_raw_tty(slave, 19200)
        attrs = termios.tcgetattr(slave)
        assert attrs[3] == 0
        assert attrs[2] & termios.CSIZE == termios.CS8
        assert attrs[2] & termios.CREAD
        assert attrs[5] == termios.B19200
    finally:
        os.close(master)
        os.close(slave)
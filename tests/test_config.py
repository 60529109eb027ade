import pytest

from hamax25.callsign import encode_callsign
from hamax25.ipd.config import (
    ConfigError,
    dump_config,
    parse_line,
    read_config,
    validate,
)
from hamax25.ipd.kiss import ParamTable
from hamax25.ipd.routing import RouteFlags, RoutingTable
from hamax25.ipd.settings import DEFAULT_UDP_PORT, Settings


@pytest.fixture
def env():
    return Settings(), RoutingTable(), ParamTable()


def apply(env, line):
    parse_line(*env, line)
    return env[0]


def test_mycall(env):
    settings = apply(env, "mycall n0call-2\n")
    assert settings.mycall == encode_callsign("N0CALL-2")


def test_bad_callsign(env):
    with pytest.raises(ConfigError, match="Bad callsign format"):
        apply(env, "mycall TOOLONGCALL\n")


def test_missing_argument(env):
    with pytest.raises(ConfigError, match="Missing argument"):
        apply(env, "mycall\n")


def test_comments_and_blank_lines(env):
    settings = apply(env, "# mycall N0CALL\n")
    apply(env, "   \n")
    assert settings == Settings()


def test_unknown_command(env):
    with pytest.raises(ConfigError, match="Unknown command"):
        apply(env, "bogus 1\n")


def test_mode(env):
    assert apply(env, "mode tnc\n").digi is False
    with pytest.raises(ConfigError, match="tnc/digi"):
        apply(env, "mode other\n")


def test_socket_udp_default_and_explicit(env):
    settings = apply(env, "socket udp\n")
    assert settings.udp_mode and settings.udp_port == DEFAULT_UDP_PORT
    assert apply(env, "socket udp 93\n").udp_port == 93
    with pytest.raises(ConfigError, match="ip/udp"):
        apply(env, "socket tcp\n")


def test_device_not_overwritten(env):
    env[0].ttydevice = "/dev/ttyS1"
    assert apply(env, "device /dev/ttyS0\n").ttydevice == "/dev/ttyS1"


def test_route_with_udp_and_flags(env):
    apply(env, "route n0dest 127.0.0.1 udp 93 b\n")
    route = env[1].lookup(encode_callsign("N0DEST"))
    assert route.ip == "127.0.0.1"
    assert route.udp_port == 93
    assert route.flags == RouteFlags.BCAST


def test_route_inherits_udp_socket_port(env):
    apply(env, "socket udp\n")
    apply(env, "route n0dest 127.0.0.1 d\n")
    route = env[1].lookup(encode_callsign("X1ABC"))
    assert route.udp_port == DEFAULT_UDP_PORT
    assert route.flags == RouteFlags.DEFAULT


def test_btext(env):
    assert apply(env, "btext hello world\n").beacon_text == "hello world"
    with pytest.raises(ConfigError, match="too long"):
        apply(env, "btext " + "x" * 200 + "\n")


def test_beacon(env):
    settings = apply(env, "beacon every 600\n")
    assert settings.beacon_every and settings.beacon_interval == 600
    with pytest.raises(ConfigError, match="every/after"):
        apply(env, "beacon never 5\n")


def test_param_and_broadcast(env):
    apply(env, "param 1 20\n")
    apply(env, "broadcast QST NODES\n")
    assert env[2].entries == [(1, 20)]
    assert env[1].is_broadcast(encode_callsign("NODES"))


def test_myalias_sets_dual_port_only_with_mycall2(env):
    assert apply(env, "myalias ALIAS\n").dual_port is False
    apply(env, "mycall2 N0TWO\n")
    assert apply(env, "myalias ALIAS\n").dual_port is True


def test_read_config_full_file(tmp_path, env):
    path = tmp_path / "ax25ipd.conf"
    path.write_text(
        "socket udp\nmode digi\nmycall N0CALL\ndevice /dev/ttyS0\n"
        "route N0DEST 127.0.0.1\n"
    )
    read_config(str(path), *env)
    assert env[0].ttydevice == "/dev/ttyS0"
    assert len(env[1]) == 1


def test_read_config_reports_line(tmp_path, env):
    path = tmp_path / "ax25ipd.conf"
    path.write_text("socket udp\nmode sideways\n")
    with pytest.raises(ConfigError, match="line 2"):
        read_config(str(path), *env)


def test_read_config_missing_file(tmp_path, env):
    with pytest.raises(ConfigError, match="not found"):
        read_config(str(tmp_path / "absent.conf"), *env)


def test_validate_errors():
    with pytest.raises(ConfigError, match="No device"):
        validate(Settings())
    with pytest.raises(ConfigError, match="ip and/or udp"):
        validate(Settings(ttydevice="/dev/ttyS0"))
    with pytest.raises(ConfigError, match="No mycall line"):
        validate(Settings(ttydevice="/dev/ttyS0", ip_mode=True))


def test_dump_config():
    settings = Settings(ttydevice="/dev/ttyS0", ip_mode=True, mycall=encode_callsign("N0CALL"))
    text = dump_config(settings)
    assert "  mode       digi\n" in text
    assert "  mycall     N0CALL\n" in text
    assert "  socket     ip\n" in text
import socket

import pytest

from hamax25.callsign import encode_callsign
from hamax25.rtd.cache import Action, RouteCache
from hamax25.rtd.portconfig import PortConfig


def ip_int(text):
    return int.from_bytes(socket.inet_aton(text), "little")


class RecordingKernel:
    def __init__(self):
        self.ip_deleted = []
        self.ax25_deleted = []

    def del_ip_route(self, dev, ip):
        self.ip_deleted.append((dev, ip))
        return True

    def del_ax25_route(self, dev, call):
        self.ax25_deleted.append((dev, call))
        return True


@pytest.fixture
def config():
    return PortConfig(
        port="radio", dev="ax0", ip=ip_int("44.0.0.1"), netmask=ip_int("255.0.0.0")
    )


CALL = encode_callsign("N0CALL")
OTHER = encode_callsign("N0CALL-7")
DIGI = encode_callsign("DB0ABC")

ALL = Action.NEW_ROUTE | Action.NEW_ARP | Action.NEW_IPMODE


def test_new_ip_route_reports_every_action(config):
    cache = RouteCache()
    assert cache.update_ip_route(config, ip_int("44.1.2.3"), True, CALL, 100) == ALL
    assert [r.address for r in cache.ip_routes] == ["44.1.2.3"]


def test_ip_outside_subnet_is_ignored(config):
    cache = RouteCache()
    assert cache.update_ip_route(config, ip_int("10.1.2.3"), True, CALL, 100) == Action.NONE
    assert cache.ip_routes == []


def test_repeated_update_reports_only_changes(config):
    cache = RouteCache()
    ip = ip_int("44.1.2.3")
    cache.update_ip_route(config, ip, True, CALL, 100)
    assert cache.update_ip_route(config, ip, True, CALL, 200) == Action.NONE
    assert cache.update_ip_route(config, ip, True, OTHER, 300) == Action.NEW_ARP
    assert cache.update_ip_route(config, ip, False, OTHER, 400) == Action.NEW_IPMODE
    assert cache.ip_routes[0].timestamp == 400


def test_permanent_ip_route_is_not_overwritten(config):
    cache = RouteCache()
    ip = ip_int("44.1.2.3")
    cache.update_ip_route(config, ip, True, CALL, 0)
    assert cache.update_ip_route(config, ip, False, OTHER, 100) == Action.NONE
    assert cache.ip_routes[0].call == CALL


def test_most_recent_first_and_eviction(config):
    cache = RouteCache(ip_max=2)
    ips = [ip_int(f"44.0.0.{n}") for n in (10, 11, 12)]
    for stamp, ip in enumerate(ips, 1):
        cache.update_ip_route(config, ip, True, CALL, stamp)
    assert [r.ip for r in cache.ip_routes] == [ips[2], ips[1]]
    cache.update_ip_route(config, ips[1], True, CALL, 9)
    assert [r.ip for r in cache.ip_routes] == [ips[1], ips[2]]


def test_ax25_route_update(config):
    cache = RouteCache()
    route = cache.update_ax25_route(config, CALL, [DIGI], 100)
    assert route is not None and route.digipeaters == (DIGI,)
    assert cache.update_ax25_route(config, CALL, [DIGI], 200) is None
    changed = cache.update_ax25_route(config, CALL, [], 300)
    assert changed is not None and changed.digipeaters == ()


def test_ax25_route_moving_device_deletes_old_kernel_route(config):
    kernel = RecordingKernel()
    cache = RouteCache(kernel=kernel)
    cache.update_ax25_route(config, CALL, [], 100)
    other = PortConfig(port="other", dev="ax1")
    assert cache.update_ax25_route(other, CALL, [], 200).iface == "ax1"
    assert kernel.ax25_deleted == [("ax0", CALL)]


def test_del_ax25_route_removes_dependent_ip_routes(config):
    kernel = RecordingKernel()
    cache = RouteCache(kernel=kernel)
    ip = ip_int("44.1.2.3")
    cache.update_ax25_route(config, CALL, [], 100)
    cache.update_ip_route(config, ip, True, CALL, 100)
    assert cache.del_ax25_route(config, CALL) is True
    assert cache.ax25_routes == [] and cache.ip_routes == []
    assert kernel.ip_deleted == [("ax0", ip)]
    assert cache.del_ax25_route(config, CALL) is False


def test_del_and_invalidate_ip_route(config):
    cache = RouteCache()
    ip = ip_int("44.1.2.3")
    assert cache.del_ip_route(0) is False
    cache.update_ip_route(config, ip, True, CALL, 100)
    assert cache.invalidate_ip_route(ip) is True
    assert cache.ip_routes[0].invalid is True
    assert cache.del_ip_route(ip) is True
    assert cache.del_ip_route(ip) is False
    assert cache.invalidate_ip_route(ip) is False


def test_expire_keeps_permanent_and_fresh_entries(config):
    cache = RouteCache()
    cache.update_ax25_route(config, CALL, [], 0)
    cache.update_ax25_route(config, OTHER, [], 100)
    cache.update_ax25_route(config, DIGI, [], 1000)
    assert cache.expire_ax25_routes(600, now=1000) == 1
    assert {r.call for r in cache.ax25_routes} == {CALL, DIGI}
    cache.update_ip_route(config, ip_int("44.1.2.3"), True, CALL, 50)
    assert cache.expire_ip_routes(600, now=1000) == 1
    assert cache.ip_routes == []


def test_dump_ip_routes_as_commands(config):
    cache = RouteCache()
    cache.update_ip_route(config, ip_int("44.1.2.3"), True, CALL, 100)
    assert cache.dump_ip_routes([config], True) == "add ip 44.1.2.3 ax0  00000064 N0CALL    v\n"


def test_dump_ip_routes_listing_uses_port_name(config):
    cache = RouteCache()
    ip = ip_int("44.1.2.3")
    cache.update_ip_route(config, ip, False, CALL, 100)
    cache.invalidate_ip_route(ip)
    text = cache.dump_ip_routes([config], False)
    assert text.endswith(".\n")
    first = text.splitlines()[0]
    assert first.split()[1] == "radio"
    assert first.endswith("X")


def test_dump_ax25_routes(config):
    cache = RouteCache()
    cache.update_ax25_route(config, CALL, [DIGI], 100)
    commands = cache.dump_ax25_routes([config], True)
    assert commands.startswith("add ax25 N0CALL")
    assert commands.endswith(" DB0ABC\n")
    listing = cache.dump_ax25_routes([config], False)
    assert listing.splitlines() == [listing.splitlines()[0], "."]
    assert listing.split()[1] == "radio"
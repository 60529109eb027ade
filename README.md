# hamax25

AX.25 networking tools for Linux amateur radio stations: a daemon that
learns AX.25 and IP routes from heard traffic, and the building blocks
of an AX.25-over-IP link (callsigns, KISS framing, a callsign-to-IP
routing table and its configuration file).

## AX.25 route learning daemon

`hamax25-rtd` listens to AX.25 traffic and learns AX.25 digipeater
paths, IP host routes, ARP entries and IP modes (datagram or virtual
circuit) from what it hears. Start it with:

    hamax25-rtd

It reads the port callsigns from `/etc/ax25/axports`, its settings from
`/etc/ax25/ax25rtd.conf` and the listening callsigns from
`/proc/net/ax25`, replays the saved cache from
`/var/ax25/ax25rtd/ax25_route` and `/var/ax25/ax25rtd/ip_route`, then
forks into the background.

A configuration file has one section per port:

    ip-encaps-dev ipax0
    iproute2-table ax25
    ax25-maxroutes 256
    ip-maxroutes 256

    [1k2]
    ax25-learn-routes yes
    ax25-learn-only-mine no
    ax25-add-path db0aaa
    ax25-more-mycalls n0call-2 n0call-3
    ip-learn-routes yes
    ip-adjust-mode yes
    arp-add yes
    irtt 5000

Commands are taken one per line on the Unix socket
`/var/ax25/ax25rtd/control`:

    add ax25 <callsign> <dev> <time> [<digipeater> ...]
    add ip   <ip> <dev> <time> <call> <mode>
    del ax25 <callsign> <dev>
    del ip   <ip>
    list ax25|ip
    expire <minutes>
    reload
    save
    shutdown
    version
    quit

`<time>` is a hexadecimal Unix time; 0 marks a permanent entry.
`SIGHUP` reloads the configuration, `SIGUSR1` writes the configuration
and both caches to standard error, and `SIGTERM` saves the cache and
exits.

## Using the library

    from hamax25.callsign import encode_callsign, decode_callsign, addrmatch
    from hamax25.ipd.kiss import encode_kiss, KissDecoder, ParamTable
    from hamax25.ipd.settings import Settings, Stats
    from hamax25.ipd.routing import RoutingTable, RouteFlags
    from hamax25.ipd.config import parse_line, validate, dump_config

    raw = encode_callsign("N0CALL-7")
    assert decode_callsign(raw) == "N0CALL-7"

    decoder = KissDecoder(Stats())
    assert decoder.feed(encode_kiss(0, b"payload")) == [b"payload"]

    settings, routes, params = Settings(), RoutingTable(), ParamTable()
    for line in ("socket udp 10093", "mycall N0CALL-1", "device /dev/ttyS0",
                 "route N0CALL-2 192.0.2.10 udp 10093 b"):
        parse_line(settings, routes, params, line)
    validate(settings)
    print(dump_config(settings), routes.dump())

On the route daemon side, `hamax25.rtd.frames.parse_frame` decodes a
heard frame, `hamax25.rtd.cache.RouteCache` keeps the learned routes,
`hamax25.rtd.rtdconf.parse_config` reads the configuration text and
`hamax25.rtd.commands.RouteDaemon` carries out commands and learns from
packets; `hamax25.rtd.kernel.KernelRoutes` pushes changes to the kernel.

## What is not included

The package has no AX.25-over-IP daemon that can be run: there is no
command for it, no socket and serial I/O loop, no frame digipeating or
forwarding, no beacon sending, no AX.25 frame check sequence (CRC)
code and no BPQ ethernet support. Only its settings, KISS framing,
routing table, configuration parsing and tty helpers are provided.
There is also no control client for the route daemon; any tool that
writes lines to a Unix stream socket can send it commands.

## Tests

    pip install -e .[test]
    pytest
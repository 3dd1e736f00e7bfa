"""UDP scanning over raw sockets, judged by ICMP port-unreachable replies."""

from __future__ import annotations

import ipaddress
import socket
import sys
import time
from collections.abc import Iterable, Iterator
from contextlib import closing
from typing import Union

from l4scan.analysis import PortState, ScanError, ScanResult, analyze_udp_response
from l4scan.packets import build_udp_probe
from l4scan.tcp_scan import _from_target, _sockaddr, open_raw_socket

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, bytes, int, IPAddress]

DEFAULT_DELAY = 1.0
_RECEIVE_SIZE = 1024


def _await_verdict(receiver, target: IPAddress, timeout: int) -> PortState:
    """Wait for an ICMP message from target; silence means the port is open."""
    ipv6 = target.version == 6
    start = time.monotonic()
    while True:
        elapsed = int((time.monotonic() - start) * 1000)
        remaining = timeout - elapsed
        if remaining <= 0:
            return PortState.OPEN
        receiver.settimeout(remaining / 1000)
        try:
            packet, sender = receiver.recvfrom(_RECEIVE_SIZE)
        except TimeoutError:
            return PortState.OPEN
        except OSError as error:
            raise ScanError("Waiting for a reply failed.") from error
        if not _from_target(packet, sender, target):
            continue
        if not packet:
            return PortState.OPEN
        try:
            return analyze_udp_response(packet, ipv6)
        except ValueError:
            continue


def probe_udp_port(
    receiver,
    source_ip: AddressLike,
    target_ip: AddressLike,
    port: int,
    timeout: int,
) -> PortState:
    """Send one empty UDP datagram to port and report the port's state.

    The port is closed when the target answers with a port-unreachable
    message on the receiver socket, and open otherwise, including when
    nothing arrives within timeout milliseconds.
    """
    source = ipaddress.ip_address(source_ip)
    target = ipaddress.ip_address(target_ip)
    ipv6 = target.version == 6
    with closing(open_raw_socket(socket.IPPROTO_UDP, ipv6)) as sender:
        try:
            sender.bind(_sockaddr(source))
        except OSError as error:
            raise ScanError("Binding source IP failed.") from error
        datagram = build_udp_probe(source, target, port)
        try:
            sender.sendto(datagram, _sockaddr(target))
        except OSError as error:
            if not ipv6:
                raise ScanError("Failed to send the packet.") from error
            print("Error: Failed to send the packet.", file=sys.stderr)
        return _await_verdict(receiver, target, timeout)


def scan_udp(
    source_ip: AddressLike,
    target_ip: AddressLike,
    ports: Iterable[int],
    timeout: int,
    delay: float = DEFAULT_DELAY,
) -> Iterator[ScanResult]:
    """Scan the given UDP ports of target_ip in ascending order.

    Waits delay seconds between consecutive probes so as not to flood the
    target. Yields one result per port as soon as its state is known.
    """
    source = ipaddress.ip_address(source_ip)
    target = ipaddress.ip_address(target_ip)
    if source.version != target.version:
        raise ValueError("source and target must be of the same address family")
    ipv6 = target.version == 6
    protocol = socket.IPPROTO_ICMPV6 if ipv6 else socket.IPPROTO_ICMP
    with closing(open_raw_socket(protocol, ipv6)) as receiver:
        for index, port in enumerate(sorted(set(ports))):
            if index and delay:
                time.sleep(delay)
            state = probe_udp_port(receiver, source, target, port, timeout)
            yield ScanResult(target, port, "udp", state)
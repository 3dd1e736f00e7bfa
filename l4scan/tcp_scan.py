"""TCP SYN scanning over raw sockets."""

from __future__ import annotations

import ipaddress
import random
import socket
import time
from collections.abc import Iterable, Iterator
from contextlib import closing
from typing import Optional, Union

from l4scan.analysis import (
    PortState,
    ScanError,
    ScanResult,
    TcpReply,
    analyze_tcp_response,
    ipv4_source,
)
from l4scan.packets import build_tcp_syn

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, bytes, int, IPAddress]

_ATTEMPTS = 2
_RECEIVE_SIZE = 1024


def open_raw_socket(protocol: int, ipv6: bool) -> socket.socket:
    """Open a raw IPv4 or IPv6 socket for the given IP protocol."""
    family = socket.AF_INET6 if ipv6 else socket.AF_INET
    try:
        return socket.socket(family, socket.SOCK_RAW, protocol)
    except OSError as error:
        raise ScanError("The creation of a raw socket failed.") from error


def _sockaddr(address: IPAddress) -> tuple:
    if address.version == 6:
        return (str(address), 0, 0, 0)
    return (str(address), 0)


def _from_target(packet: bytes, sender, target: IPAddress) -> bool:
    if target.version == 6:
        try:
            host = ipaddress.ip_address(str(sender[0]).split("%", 1)[0])
        except (ValueError, IndexError, TypeError):
            return False
        return host == target
    try:
        return ipv4_source(packet) == target
    except ValueError:
        return False


def _await_reply(
    sock, target: IPAddress, sequence: int, timeout: int
) -> Optional[TcpReply]:
    """Wait for a reply from target to the SYN with this sequence number.

    Returns None when the timeout expires before such a reply arrives.
    """
    ipv6 = target.version == 6
    start = time.monotonic()
    while True:
        elapsed = int((time.monotonic() - start) * 1000)
        remaining = timeout - elapsed
        if remaining <= 0:
            return None
        sock.settimeout(remaining / 1000)
        try:
            packet, sender = sock.recvfrom(_RECEIVE_SIZE)
        except TimeoutError:
            return None
        except OSError as error:
            raise ScanError("Waiting for a reply failed.") from error
        if not _from_target(packet, sender, target):
            continue
        if not packet:
            return TcpReply.OTHER
        try:
            reply = analyze_tcp_response(packet, ipv6, sequence)
        except ValueError:
            continue
        if reply is TcpReply.UNRELATED:
            continue
        return reply


def probe_tcp_port(
    sock,
    source_ip: AddressLike,
    target_ip: AddressLike,
    port: int,
    timeout: int,
) -> PortState:
    """Send SYN probes to one port and report its state.

    A port is filtered once two probes in a row go unanswered within
    timeout milliseconds. A reply that is neither SYN-ACK nor RST causes
    a fresh probe without counting as a timeout.
    """
    source = ipaddress.ip_address(source_ip)
    target = ipaddress.ip_address(target_ip)
    destination = _sockaddr(target)
    timeouts = 0
    while timeouts < _ATTEMPTS:
        sequence = random.randrange(2**31)
        segment = build_tcp_syn(source, target, port, sequence)
        try:
            sock.sendto(segment, destination)
        except OSError as error:
            raise ScanError("Failed to send the packet.") from error
        reply = _await_reply(sock, target, sequence, timeout)
        if reply is None:
            timeouts += 1
        elif reply is TcpReply.OPEN:
            return PortState.OPEN
        elif reply is TcpReply.CLOSED:
            return PortState.CLOSED
    return PortState.FILTERED


def scan_tcp(
    source_ip: AddressLike,
    target_ip: AddressLike,
    ports: Iterable[int],
    timeout: int,
) -> Iterator[ScanResult]:
    """Scan the given TCP ports of target_ip in ascending order.

    Yields one result per port as soon as its state is known.
    """
    source = ipaddress.ip_address(source_ip)
    target = ipaddress.ip_address(target_ip)
    if source.version != target.version:
        raise ValueError("source and target must be of the same address family")
    ipv6 = target.version == 6
    for port in sorted(set(ports)):
        with closing(open_raw_socket(socket.IPPROTO_TCP, ipv6)) as sock:
            try:
                sock.bind(_sockaddr(source))
            except OSError as error:
                raise ScanError("Binding source IP failed.") from error
            state = probe_tcp_port(sock, source, target, port, timeout)
        yield ScanResult(target, port, "tcp", state)
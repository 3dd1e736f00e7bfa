"""Construction of TCP SYN and UDP probe headers with their checksums."""

from __future__ import annotations

import ipaddress
import random
import socket
import struct
from typing import Union

SOURCE_PORT = 50000
TCP_HEADER_LENGTH = 20
UDP_HEADER_LENGTH = 8
TCP_SYN = 0x02
TCP_WINDOW = 65535

Address = Union[str, bytes, int, ipaddress.IPv4Address, ipaddress.IPv6Address]

_TCP_HEADER = struct.Struct("!HHIIBBHHH")
_UDP_HEADER = struct.Struct("!HHHH")


def internet_checksum(data: bytes) -> int:
    """Return the one's complement checksum of data (RFC 1071).

    An odd trailing byte is padded with a zero byte.
    """
    if len(data) % 2:
        data = bytes(data) + b"\x00"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def _packed(address: Address) -> bytes:
    return ipaddress.ip_address(address).packed


def pseudo_header(source_ip: Address, dest_ip: Address, protocol: int, length: int) -> bytes:
    """Build the pseudo header that precedes a segment in its checksum."""
    source, dest = _packed(source_ip), _packed(dest_ip)
    if len(source) != len(dest):
        raise ValueError("source and destination must be of the same address family")
    return source + dest + struct.pack("!BBH", 0, protocol, length)


def tcp_checksum(source_ip: Address, dest_ip: Address, segment: bytes) -> int:
    """Checksum of a TCP segment whose checksum field is zero."""
    header = pseudo_header(source_ip, dest_ip, socket.IPPROTO_TCP, len(segment))
    return internet_checksum(header + segment)


def udp_checksum(source_ip: Address, dest_ip: Address, datagram: bytes) -> int:
    """Checksum of a UDP datagram whose checksum field is zero."""
    header = pseudo_header(source_ip, dest_ip, socket.IPPROTO_UDP, len(datagram))
    return internet_checksum(header + datagram)


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port {port} is out of range")


def build_tcp_syn(
    source_ip: Address,
    target_ip: Address,
    destination_port: int,
    sequence: int | None = None,
) -> bytes:
    """Return a 20-byte TCP header carrying a SYN to destination_port.

    When no sequence number is given a random one is chosen.
    """
    _check_port(destination_port)
    if sequence is None:
        sequence = random.randrange(2**31)
    fields = [
        SOURCE_PORT,
        destination_port,
        sequence & 0xFFFFFFFF,
        0,
        (TCP_HEADER_LENGTH // 4) << 4,
        TCP_SYN,
        TCP_WINDOW,
        0,
        0,
    ]
    checksum = tcp_checksum(source_ip, target_ip, _TCP_HEADER.pack(*fields))
    fields[7] = checksum
    return _TCP_HEADER.pack(*fields)


def build_udp_probe(source_ip: Address, target_ip: Address, destination_port: int) -> bytes:
    """Return an 8-byte UDP header with no payload addressed to destination_port."""
    _check_port(destination_port)
    unsigned = _UDP_HEADER.pack(SOURCE_PORT, destination_port, UDP_HEADER_LENGTH, 0)
    checksum = udp_checksum(source_ip, target_ip, unsigned)
    return _UDP_HEADER.pack(SOURCE_PORT, destination_port, UDP_HEADER_LENGTH, checksum)
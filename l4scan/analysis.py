"""Interpretation of replies received while probing ports."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Union

_IPV4_MIN_HEADER = 20
_TCP_MIN_HEADER = 20
_ICMP_MIN_HEADER = 4

_TCP_RST = 0x04
_TCP_SYN = 0x02
_TCP_ACK = 0x10

_ICMP_DEST_UNREACHABLE = 3
_ICMP_PORT_UNREACHABLE = 3
_ICMP6_DEST_UNREACHABLE = 1
_ICMP6_PORT_UNREACHABLE = 4


class PortState(Enum):
    """State reported for a scanned port."""

    OPEN = "open"
    CLOSED = "closed"
    FILTERED = "filtered"


class TcpReply(Enum):
    """Meaning of a TCP segment received in answer to a SYN probe."""

    OPEN = "open"
    CLOSED = "closed"
    UNRELATED = "unrelated"
    OTHER = "other"


class ScanError(RuntimeError):
    """Raised when a scan cannot be carried out."""


@dataclass(frozen=True)
class ScanResult:
    """Outcome of scanning one port of one address."""

    address: Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]
    port: int
    protocol: str
    state: PortState

    def __str__(self) -> str:
        return f"{self.address} {self.port} {self.protocol} {self.state.value}"


def _ipv4_payload(packet: bytes) -> bytes:
    if len(packet) < _IPV4_MIN_HEADER:
        raise ValueError("packet is too short to hold an IPv4 header")
    header_length = (packet[0] & 0x0F) * 4
    if header_length < _IPV4_MIN_HEADER or len(packet) < header_length:
        raise ValueError("IPv4 header length field is invalid")
    return packet[header_length:]


def ipv4_source(packet: bytes) -> ipaddress.IPv4Address:
    """Return the source address from the IPv4 header at the start of packet."""
    if len(packet) < _IPV4_MIN_HEADER:
        raise ValueError("packet is too short to hold an IPv4 header")
    return ipaddress.IPv4Address(bytes(packet[12:16]))


def analyze_tcp_response(packet: bytes, ipv6: bool, sequence: int) -> TcpReply:
    """Classify a TCP reply to a SYN that carried the given sequence number.

    An IPv4 packet starts with its IP header; on IPv6 the packet is the TCP
    segment alone, as delivered by a raw socket.
    """
    segment = bytes(packet) if ipv6 else _ipv4_payload(bytes(packet))
    if len(segment) < _TCP_MIN_HEADER:
        raise ValueError("packet is too short to hold a TCP header")
    (ack,) = struct.unpack_from("!I", segment, 8)
    flags = segment[13]
    if ack != (sequence + 1) & 0xFFFFFFFF:
        return TcpReply.UNRELATED
    if flags & _TCP_RST:
        return TcpReply.CLOSED
    if flags & _TCP_SYN and flags & _TCP_ACK:
        return TcpReply.OPEN
    return TcpReply.OTHER


def analyze_udp_response(packet: bytes, ipv6: bool) -> PortState:
    """Decide from an ICMP or ICMPv6 message whether a UDP port is closed.

    Port-unreachable messages mean closed; anything else leaves the port open.
    """
    if ipv6:
        message = bytes(packet)
        unreachable = (_ICMP6_DEST_UNREACHABLE, _ICMP6_PORT_UNREACHABLE)
    else:
        message = _ipv4_payload(bytes(packet))
        unreachable = (_ICMP_DEST_UNREACHABLE, _ICMP_PORT_UNREACHABLE)
    if len(message) < _ICMP_MIN_HEADER:
        raise ValueError("packet is too short to hold an ICMP header")
    if (message[0], message[1]) == unreachable:
        return PortState.CLOSED
    return PortState.OPEN
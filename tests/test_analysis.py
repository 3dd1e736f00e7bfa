import ipaddress
import struct

import pytest

from l4scan.analysis import (
    PortState,
    ScanResult,
    TcpReply,
    analyze_tcp_response,
    analyze_udp_response,
    ipv4_source,
)


def _ipv4_header(source="10.0.0.1", dest="10.0.0.2", protocol=6, options=b""):
    ihl = (20 + len(options)) // 4
    header = struct.pack(
        "!BBHHHBBH4s4s",
        0x40 | ihl,
        0,
        0,
        0,
        0,
        64,
        protocol,
        0,
        ipaddress.IPv4Address(source).packed,
        ipaddress.IPv4Address(dest).packed,
    )
    return header + options


def _tcp_segment(ack, flags):
    return struct.pack("!HHIIBBHHH", 80, 50000, 1234, ack, 0x50, flags, 1024, 0, 0)


SYN_ACK = 0x12
RST_ACK = 0x14
ACK = 0x10


def test_ipv4_source_reads_header():
    packet = _ipv4_header(source="192.0.2.7") + _tcp_segment(1, ACK)
    assert ipv4_source(packet) == ipaddress.IPv4Address("192.0.2.7")


def test_ipv4_source_rejects_short_packet():
    with pytest.raises(ValueError):
        ipv4_source(b"\x45" * 10)


def test_tcp_syn_ack_means_open():
    packet = _ipv4_header() + _tcp_segment(1001, SYN_ACK)
    assert analyze_tcp_response(packet, False, 1000) is TcpReply.OPEN


def test_tcp_rst_means_closed():
    packet = _ipv4_header() + _tcp_segment(1001, RST_ACK)
    assert analyze_tcp_response(packet, False, 1000) is TcpReply.CLOSED


def test_tcp_wrong_ack_is_unrelated():
    packet = _ipv4_header() + _tcp_segment(5000, SYN_ACK)
    assert analyze_tcp_response(packet, False, 1000) is TcpReply.UNRELATED


def test_tcp_plain_ack_is_other():
    packet = _ipv4_header() + _tcp_segment(1001, ACK)
    assert analyze_tcp_response(packet, False, 1000) is TcpReply.OTHER


def test_tcp_sequence_wraps_around():
    packet = _ipv4_header() + _tcp_segment(0, SYN_ACK)
    assert analyze_tcp_response(packet, False, 0xFFFFFFFF) is TcpReply.OPEN


def test_tcp_ip_options_are_skipped():
    packet = _ipv4_header(options=b"\x01\x01\x01\x00") + _tcp_segment(43, RST_ACK)
    assert analyze_tcp_response(packet, False, 42) is TcpReply.CLOSED


def test_tcp_ipv6_segment_without_ip_header():
    assert analyze_tcp_response(_tcp_segment(8, SYN_ACK), True, 7) is TcpReply.OPEN


def test_tcp_truncated_segment_raises():
    with pytest.raises(ValueError):
        analyze_tcp_response(_ipv4_header() + b"\x00" * 5, False, 1)


def test_udp_port_unreachable_means_closed():
    packet = _ipv4_header(protocol=1) + bytes([3, 3, 0, 0, 0, 0, 0, 0])
    assert analyze_udp_response(packet, False) is PortState.CLOSED


def test_udp_other_icmp_means_open():
    packet = _ipv4_header(protocol=1) + bytes([3, 1, 0, 0, 0, 0, 0, 0])
    assert analyze_udp_response(packet, False) is PortState.OPEN


def test_udp_ipv6_port_unreachable_means_closed():
    assert analyze_udp_response(bytes([1, 4, 0, 0, 0, 0, 0, 0]), True) is PortState.CLOSED


def test_udp_ipv6_ipv4_codes_mean_open():
    assert analyze_udp_response(bytes([3, 3, 0, 0, 0, 0, 0, 0]), True) is PortState.OPEN


def test_scan_result_format():
    result = ScanResult("127.0.0.1", 22, "tcp", PortState.OPEN)
    assert str(result) == "127.0.0.1 22 tcp open"


def test_scan_result_with_address_object():
    result = ScanResult(ipaddress.IPv4Address("127.0.0.1"), 53, "udp", PortState.CLOSED)
    assert str(result) == "127.0.0.1 53 udp closed"


def test_scan_result_with_ipv6_address():
    result = ScanResult(ipaddress.IPv6Address("::1"), 443, "tcp", PortState.CLOSED)
    assert str(result) == "::1 443 tcp closed"
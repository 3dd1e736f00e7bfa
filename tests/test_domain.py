import ipaddress
import socket
from unittest import mock

import pytest

from l4scan.analysis import PortState, ScanError
from l4scan.domain import resolve_unique, scan_domain

ADDRESS4 = "192.0.2.1"
ADDRESS6 = "2001:db8::1"


def entry4(address):
    return (socket.AF_INET, socket.SOCK_STREAM, 6, "", (address, 0))


def entry6(address):
    return (socket.AF_INET6, socket.SOCK_STREAM, 6, "", (address, 0, 0, 0))


RESOLVED = [entry4(ADDRESS4), entry6(ADDRESS6), entry4(ADDRESS4), entry6(ADDRESS6)]


class FakeSocket:
    def __init__(self, family, type_, proto):
        self.family = family
        self.proto = proto
        self.sent = []
        self.closed = False

    def bind(self, address):
        self.bound = address

    def sendto(self, data, address):
        self.sent.append((data, address))
        return len(data)

    def settimeout(self, value):
        self.timeout = value

    def recvfrom(self, size):
        raise TimeoutError

    def close(self):
        self.closed = True


def test_resolve_unique_removes_repeats_in_order():
    with mock.patch("socket.getaddrinfo", return_value=RESOLVED):
        addresses = resolve_unique("example.com")
    assert addresses == [ipaddress.IPv4Address(ADDRESS4), ipaddress.IPv6Address(ADDRESS6)]


def test_resolve_unique_strips_scope():
    with mock.patch("socket.getaddrinfo", return_value=[entry6("fe80::1%eth0")]):
        addresses = resolve_unique("example.com")
    assert addresses == [ipaddress.IPv6Address("fe80::1")]


def test_resolution_failure_raises():
    with mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("no name")):
        with pytest.raises(ScanError, match="example.com"):
            resolve_unique("example.com")


def test_scan_domain_propagates_resolution_failure():
    with mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("no name")):
        with pytest.raises(ScanError):
            list(scan_domain("example.com", [80], [53], 0, None, None))


def test_families_without_source_are_skipped_once(capsys):
    with mock.patch("socket.getaddrinfo", return_value=RESOLVED):
        results = list(scan_domain("example.com", [80], [53], 0, None, None))
    assert results == []
    out = capsys.readouterr().out
    assert out.count("Skipping IPV4 since the chosen interface has no suitable IPV4 address.") == 1
    assert out.count("Skipping IPV6 since the chosen interface has no suitable IPV6 address.") == 1


def test_scan_domain_scans_each_address_once_tcp_then_udp(capsys):
    with mock.patch("socket.getaddrinfo", return_value=RESOLVED), \
            mock.patch("socket.socket", side_effect=FakeSocket):
        results = list(scan_domain("example.com", [80], [53], 0, "127.0.0.1", None))
    assert [(r.port, r.protocol, r.state) for r in results] == [
        (80, "tcp", PortState.FILTERED),
        (53, "udp", PortState.OPEN),
    ]
    assert {r.address for r in results} == {ipaddress.IPv4Address(ADDRESS4)}
    out = capsys.readouterr().out
    assert "Skipping IPV6" in out
    assert "Skipping IPV4" not in out


def test_scan_domain_ipv6_only_source():
    with mock.patch("socket.getaddrinfo", return_value=RESOLVED), \
            mock.patch("socket.socket", side_effect=FakeSocket):
        results = list(scan_domain("example.com", [22], [], 0, None, "2001:db8::5"))
    assert [str(result) for result in results] == [f"{ADDRESS6} 22 tcp filtered"]
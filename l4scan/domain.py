"""Resolution of a domain name and scanning of every address it maps to."""

from __future__ import annotations

import ipaddress
import socket
from collections.abc import Iterable, Iterator
from typing import Optional, Union

from l4scan.analysis import ScanError, ScanResult
from l4scan.tcp_scan import scan_tcp
from l4scan.udp_scan import scan_udp

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, bytes, int, IPAddress]


def resolve_unique(domain: str) -> list[IPAddress]:
    """Resolve domain to its addresses, in resolver order and without repeats."""
    try:
        entries = socket.getaddrinfo(domain, None, socket.AF_UNSPEC)
    except (socket.gaierror, UnicodeError) as error:
        raise ScanError(f"An error occured resolving domain: {domain}") from error
    addresses = (
        ipaddress.ip_address(str(sockaddr[0]).split("%", 1)[0])
        for family, _type, _proto, _name, sockaddr in entries
        if family in (socket.AF_INET, socket.AF_INET6)
    )
    return list(dict.fromkeys(addresses))


def scan_domain(
    domain: str,
    tcp_ports: Iterable[int],
    udp_ports: Iterable[int],
    timeout: int,
    source_ipv4: Optional[AddressLike],
    source_ipv6: Optional[AddressLike],
) -> Iterator[ScanResult]:
    """Scan every distinct address of domain, TCP ports first, then UDP.

    Addresses of a family for which no source address is given are skipped,
    with a notice printed once per family.
    """
    tcp_ports = sorted(set(tcp_ports))
    udp_ports = sorted(set(udp_ports))
    sources = {4: source_ipv4, 6: source_ipv6}
    notified: set[int] = set()
    for address in resolve_unique(domain):
        source = sources[address.version]
        if source is None:
            if address.version not in notified:
                label = f"IPV{address.version}"
                print(
                    f"Skipping {label} since the chosen interface has no "
                    f"suitable {label} address."
                )
                notified.add(address.version)
            continue
        yield from scan_tcp(source, address, tcp_ports, timeout)
        yield from scan_udp(source, address, udp_ports, timeout)
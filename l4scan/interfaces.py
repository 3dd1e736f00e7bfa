"""Listing of network interfaces and lookup of their addresses."""

from __future__ import annotations

import ipaddress
import socket
from typing import Optional, Union

import psutil

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _interface_table() -> dict:
    try:
        return psutil.net_if_addrs()
    except OSError as error:
        raise OSError("An error occured fetching the available interfaces.") from error


def active_interfaces() -> list[str]:
    """Return the names of interfaces, once for each IPv4 address they hold."""
    return [
        name
        for name, addresses in _interface_table().items()
        for address in addresses
        if address.family == socket.AF_INET
    ]


def print_available_interfaces() -> None:
    """Print the interfaces that have an IPv4 address."""
    names = active_interfaces()
    print("Active network interfaces:")
    for name in names:
        print(name)


def interface_address(name: str, ipv6: bool) -> Optional[IPAddress]:
    """Return the first IPv4, or non link-local IPv6, address of an interface.

    Returns None when the interface has no suitable address.
    """
    family = socket.AF_INET6 if ipv6 else socket.AF_INET
    for address in _interface_table().get(name, []):
        if address.family != family:
            continue
        ip = ipaddress.ip_address(address.address.split("%", 1)[0])
        if ipv6 and ip.is_link_local:
            continue
        return ip
    return None
"""Parsing of port specifications and classification of scan targets."""

from __future__ import annotations

import ipaddress
import re
from enum import Enum

MAX_PORTS = 65535

_DIGITS = frozenset("0123456789")
_DOMAIN_RE = re.compile(
    r"(([a-zA-Z0-9]+(-[a-zA-Z0-9]+)*\.)+[a-zA-Z]{2,})", re.ASCII
)
# A range token: up to five characters before the dash, then up to five
# non-blank characters after it (leading blanks after the dash are skipped).
_RANGE_RE = re.compile(r"([^-]{1,5})-\s*(\S{1,5})")


class TargetType(Enum):
    """Kind of target given on the command line."""

    UNKNOWN = "unknown"
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DOMAIN = "domain"
    LOCALHOST = "localhost"


class PortSpecError(ValueError):
    """Raised when a port specification cannot be parsed."""


def is_number(string: str) -> bool:
    """Return True if the string is non-empty and made of ASCII digits only."""
    return bool(string) and all(char in _DIGITS for char in string)


def _parse_range(token: str) -> range:
    match = _RANGE_RE.match(token)
    if match is None:
        raise PortSpecError(
            "Unexpected value detected in the port range. Know that in ranges, "
            "the number to the left has to be smaller or equal to the number "
            "to the right."
        )
    start_str, end_str = match.groups()
    if not is_number(start_str) or not is_number(end_str):
        raise PortSpecError(
            "A non-number value has been detected in the port range."
        )
    start, end = int(start_str), int(end_str)
    if start > end or start <= 0 or end > MAX_PORTS:
        raise PortSpecError(
            "The values in the port range are in the wrong order or out of the "
            f"allowed range. The value to the left ({start}) has to be smaller "
            f"than the value on the right ({end}) and both have to be inside "
            "0-65535."
        )
    return range(start, end + 1)


def _parse_single(token: str) -> int:
    if not is_number(token):
        raise PortSpecError(
            "A non-number value has been detected in the ports to be scanned."
        )
    value = int(token)
    if not 0 < value <= MAX_PORTS:
        raise PortSpecError(
            f"The port you entered ({value}) is out of the allowed range."
        )
    return value


def parse_ports(spec: str) -> list[int]:
    """Parse a comma separated list of ports and ranges.

    Returns the selected ports sorted and without duplicates. Empty items
    between commas are ignored.
    """
    ports: set[int] = set()
    for token in filter(None, spec.split(",")):
        if "-" in token:
            ports.update(_parse_range(token))
        else:
            ports.add(_parse_single(token))
    return sorted(ports)


def _is_ipv4(target: str) -> bool:
    try:
        ipaddress.IPv4Address(target)
    except ValueError:
        return False
    return True


def _is_ipv6(target: str) -> bool:
    if "%" in target:
        return False
    try:
        ipaddress.IPv6Address(target)
    except ValueError:
        return False
    return True


def determine_target_type(target: str) -> TargetType:
    """Classify the target as an IPv4 or IPv6 address, a domain or localhost."""
    if _is_ipv4(target):
        return TargetType.IPV4
    if _is_ipv6(target):
        return TargetType.IPV6
    if _DOMAIN_RE.fullmatch(target):
        return TargetType.DOMAIN
    if target == "localhost":
        return TargetType.LOCALHOST
    return TargetType.UNKNOWN
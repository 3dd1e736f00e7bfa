"""Command line front end: argument parsing and the scan driver."""

from __future__ import annotations

import sys
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from l4scan.analysis import ScanError, ScanResult
from l4scan.domain import scan_domain
from l4scan.interfaces import interface_address, print_available_interfaces
from l4scan.ports import PortSpecError, TargetType, determine_target_type, is_number, parse_ports
from l4scan.tcp_scan import scan_tcp
from l4scan.udp_scan import scan_udp

DEFAULT_TIMEOUT = 5000
LOCALHOST_IPV4 = "127.0.0.1"

HELP_TEXT = """\
Usage:
  l4scan [-i interface | --interface interface]
         [--pt port-ranges | --pu port-ranges] | [-t port-ranges | -u port-ranges]
         [-w timeout | --wait timeout]
         [hostname | ip-address | 'localhost']

Options:
  -h, --help
      Show this help message.

  -i interface, --interface interface
      Select the network interface for scanning (e.g., eth0).
      If only an empty interface flag is given, or no arguments at all, lists all active interfaces.

  -t port-ranges, --pt port-ranges
      Specify TCP ports to scan.
        e.g., --pt 22,80-85,443

  -u port-ranges, --pu port-ranges
      Specify UDP ports to scan.
        e.g., --pu 53,67-69,161-162

  -w timeout, --wait timeout
      Set the timeout in milliseconds to wait for a response per scanned port.
      Default is 5000 ms.

  hostname | ip-address
      Target domain name or IPv4/IPv6 address or localhost to scan.

Examples:
  l4scan --interface eth0 -t 22,80-85 -u 53,67-69 example.com
  l4scan -i eth0 --pt 22,443 --pu 53 192.168.1.1
  l4scan --interface       # Lists all available interfaces

Output Format:
  Each result of a scan is printed as a single line in the format:
    [IP address] [port number] [protocol] [status]

  Example output:
    127.0.0.1 22 tcp open
    127.0.0.1 53 udp closed

Raw sockets are used, so the program has to run with root privileges."""

# Long option name -> (short flag, argument kind: "none", "optional" or "required").
_LONG_OPTIONS = {
    "interface": ("i", "optional"),
    "wait": ("w", "required"),
    "pt": ("t", "required"),
    "pu": ("u", "required"),
    "help": ("h", "none"),
}
_SHORT_REQUIRED = frozenset("wtu")


class Action(Enum):
    """What the command line asks the program to do."""

    SCAN = "scan"
    LIST_INTERFACES = "list-interfaces"
    HELP = "help"


class UsageError(ValueError):
    """Raised when the command line is malformed."""


@dataclass
class Options:
    """Settings extracted from the command line."""

    action: Action
    interface: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    target: Optional[str] = None
    tcp_ports: Optional[str] = None
    udp_ports: Optional[str] = None


@dataclass
class _Scanner:
    pending: deque
    help: bool = False
    interface_given: bool = False
    interface: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    tcp_ports: Optional[str] = None
    udp_ports: Optional[str] = None
    positionals: list = field(default_factory=list)

    def run(self) -> None:
        while self.pending:
            arg = self.pending.popleft()
            if arg == "--":
                self.positionals.extend(self.pending)
                self.pending.clear()
            elif arg.startswith("--"):
                self._long(arg[2:])
            elif arg.startswith("-") and arg != "-":
                self._short(arg[1:])
            else:
                self.positionals.append(arg)

    def _long(self, body: str) -> None:
        name, eq, value = body.partition("=")
        has_value = eq == "="
        if name in _LONG_OPTIONS:
            matches = [name]
        else:
            matches = [option for option in _LONG_OPTIONS if option.startswith(name)]
        if len(matches) != 1:
            raise UsageError(f"An unknown flag '--{name}' was detected.")
        flag, kind = _LONG_OPTIONS[matches[0]]
        if kind == "none":
            if has_value:
                raise UsageError(f"The flag '--{matches[0]}' does not take a value.")
            self._apply(flag, None)
        elif kind == "required":
            self._apply(flag, value if has_value else self._required_value(f"--{matches[0]}"))
        else:
            self._apply(flag, value if has_value else None)

    def _short(self, cluster: str) -> None:
        for position, flag in enumerate(cluster):
            rest = cluster[position + 1:]
            if flag == "h":
                self._apply(flag, None)
            elif flag == "i":
                self._apply(flag, rest or None)
                return
            elif flag in _SHORT_REQUIRED:
                self._apply(flag, rest or self._required_value(f"-{flag}"))
                return
            else:
                raise UsageError(f"An unknown flag '-{flag}' was detected.")

    def _required_value(self, option: str) -> str:
        if not self.pending:
            raise UsageError(f"The flag '{option}' requires a value.")
        return self.pending.popleft()

    def _apply(self, flag: str, value: Optional[str]) -> None:
        if flag == "i":
            self._set_interface(value)
        elif flag == "h":
            if self.help:
                raise UsageError("multiple -h/--help flags were detected.")
            self.help = True
        elif flag == "w":
            if not is_number(value):
                raise UsageError("Timeout value has to be a number.")
            self.timeout = int(value)
        elif flag == "t":
            if self.tcp_ports is not None:
                raise UsageError("multiple -t/--pt inputs were detected.")
            self.tcp_ports = value
        elif flag == "u":
            if self.udp_ports is not None:
                raise UsageError("multiple -u/--pu inputs were detected.")
            self.udp_ports = value

    def _set_interface(self, value: Optional[str]) -> None:
        if self.interface_given:
            raise UsageError("multiple -i/--interface inputs were detected.")
        self.interface_given = True
        if value is None and self.pending and self.pending[0][:1] != "-":
            value = self.pending.popleft()
        self.interface = value


def parse_args(argv: Optional[Iterable[str]] = None) -> Options:
    """Interpret the command line arguments (without the program name)."""
    args = list(sys.argv[1:] if argv is None else argv)
    scanner = _Scanner(pending=deque(args))
    scanner.run()

    if not args:
        return Options(Action.LIST_INTERFACES)

    nothing_else = (
        scanner.tcp_ports is None
        and scanner.udp_ports is None
        and not scanner.positionals
    )
    if (
        not scanner.help
        and scanner.interface_given
        and scanner.interface is None
        and nothing_else
    ):
        return Options(Action.LIST_INTERFACES, timeout=scanner.timeout)
    if scanner.help:
        if not scanner.interface_given and nothing_else:
            return Options(Action.HELP, timeout=scanner.timeout)
        raise UsageError("Help flag was detected among other flags/values.")

    if not scanner.positionals:
        raise UsageError("No target specified.")
    if len(scanner.positionals) > 1:
        raise UsageError("An unexpected argument was detected after the target.")
    if scanner.tcp_ports is None and scanner.udp_ports is None:
        raise UsageError("At least a single UDP or TCP port has to be specified.")
    if scanner.interface is None:
        raise UsageError(
            "No interface specified. To view available interfaces -> "
            "'l4scan -i' or 'l4scan'."
        )
    return Options(
        Action.SCAN,
        interface=scanner.interface,
        timeout=scanner.timeout,
        target=scanner.positionals[0],
        tcp_ports=scanner.tcp_ports,
        udp_ports=scanner.udp_ports,
    )


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _emit(results: Iterable[ScanResult]) -> None:
    for result in results:
        print(result, flush=True)


def _run_scan(options: Options) -> int:
    try:
        tcp_ports = parse_ports(options.tcp_ports) if options.tcp_ports is not None else []
        udp_ports = parse_ports(options.udp_ports) if options.udp_ports is not None else []
    except PortSpecError as error:
        return _error(str(error))

    target_type = determine_target_type(options.target)
    if target_type is TargetType.UNKNOWN:
        return _error("The specified target is not of any supported format.")

    interface = options.interface
    try:
        if target_type is TargetType.DOMAIN:
            source_ipv4 = interface_address(interface, False)
            source_ipv6 = interface_address(interface, True)
            _emit(
                scan_domain(
                    options.target, tcp_ports, udp_ports, options.timeout,
                    source_ipv4, source_ipv6,
                )
            )
            return 0

        ipv6 = target_type is TargetType.IPV6
        source = interface_address(interface, ipv6)
        if source is None:
            family = "ipv6" if ipv6 else "ipv4"
            return _error(
                f"The interface you want to use '{interface}' does not have a "
                f"suitable {family} address."
            )
        target = LOCALHOST_IPV4 if target_type is TargetType.LOCALHOST else options.target
        _emit(scan_tcp(source, target, tcp_ports, options.timeout))
        _emit(scan_udp(source, target, udp_ports, options.timeout))
    except (ScanError, OSError) as error:
        return _error(str(error))
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Run the scanner; return the process exit status."""
    try:
        options = parse_args(argv)
    except UsageError as error:
        return _error(str(error))

    if options.action is Action.HELP:
        print(HELP_TEXT)
        return 0
    if options.action is Action.LIST_INTERFACES:
        try:
            print_available_interfaces()
        except OSError as error:
            print(f"Error: {error}")
            return 1
        return 0
    return _run_scan(options)


if __name__ == "__main__":
    sys.exit(main())
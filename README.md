# l4scan

A layer 4 port scanner. It sends TCP SYN probes and empty UDP datagrams
through raw sockets, from the address of a chosen network interface, to an
IPv4 address, an IPv6 address, `localhost` or a domain name, and reports
the state of each port.

Raw sockets need privileges, so run it as root or give the interpreter
the `CAP_NET_RAW` capability.

## Installation

```
pip install .
```

This installs the `l4scan` command. The same program can be started with
`python -m l4scan.cli`.

## Usage

```
l4scan [-i interface | --interface interface]
       [-t port-ranges | --pt port-ranges] [-u port-ranges | --pu port-ranges]
       [-w timeout | --wait timeout]
       [hostname | ip-address | localhost]
```

- `-i`, `--interface`: the interface whose address the probes are sent
  from (for example `eth0`). Given without a name, and without ports or a
  target, it lists the interfaces that have an IPv4 address. Running
  `l4scan` with no arguments does the same.
- `-t`, `--pt`: TCP ports, such as `22,80-85,443`.
- `-u`, `--pu`: UDP ports, such as `53,67-69,161-162`.
- `-w`, `--wait`: how long to wait for a reply to each probe, in
  milliseconds. Defaults to 5000.
- `-h`, `--help`: show the help text. It must be the only option given.

Long options may be abbreviated to any unambiguous prefix and take their
value either as the next argument or after `=`.

Ports run from 1 to 65535, and in a range the left value must not be
larger than the right one. Empty items between commas are ignored. At
least one TCP or UDP port list, a target and an interface are needed for a
scan. Each option may be given only once.

The exit status is 0 on success and 1 on any error; errors are reported on
standard error with an `Error:` prefix.

### Examples

```
l4scan --interface eth0 -t 22,80-85 -u 53,67-69 example.com
l4scan -i eth0 --pt 22,443 --pu 53 192.168.1.1
l4scan --interface
```

## Output

Each result is printed on its own line as it becomes known:

```
127.0.0.1 22 tcp open
127.0.0.1 53 udp closed
```

Ports are scanned in ascending order, TCP first and then UDP.

TCP ports are `open` when the target replies with SYN+ACK, `closed` on
RST, and `filtered` when two probes in a row get no answer within the
timeout. Replies from other hosts or to other probes are ignored.

UDP ports are `closed` when an ICMP (or ICMPv6) port-unreachable message
arrives from the target and `open` otherwise, including when nothing
arrives in time. The scanner waits a second between UDP probes.

`localhost` is scanned as `127.0.0.1`. For a domain name every distinct
address it resolves to is scanned once, in resolver order. Address
families for which the chosen interface has no address are skipped with a
message; for IPv6 only non link-local interface addresses are used.

## Library use

The building blocks can be used on their own:

```python
from l4scan.ports import parse_ports, determine_target_type
from l4scan.packets import build_tcp_syn, internet_checksum

ports = parse_ports("22,80-82")          # [22, 80, 81, 82]
kind = determine_target_type("example.com")   # TargetType.DOMAIN
segment = build_tcp_syn("10.0.0.1", "10.0.0.2", 80, 12345)
```

- `l4scan.ports`: `parse_ports`, `is_number`, `determine_target_type`,
  `TargetType`, `PortSpecError`.
- `l4scan.packets`: `internet_checksum`, `pseudo_header`, `tcp_checksum`,
  `udp_checksum`, `build_tcp_syn`, `build_udp_probe`.
- `l4scan.analysis`: `analyze_tcp_response`, `analyze_udp_response`,
  `ipv4_source`, `PortState`, `TcpReply`, `ScanResult`, `ScanError`.
- `l4scan.interfaces`: `active_interfaces`, `print_available_interfaces`,
  `interface_address`.
- `l4scan.tcp_scan`: `open_raw_socket`, `probe_tcp_port`, `scan_tcp`.
- `l4scan.udp_scan`: `probe_udp_port`, `scan_udp` (with a `delay`
  argument for the pause between probes).
- `l4scan.domain`: `resolve_unique`, `scan_domain`.
- `l4scan.cli`: `parse_args`, `main`, `Options`, `Action`, `UsageError`.

`scan_tcp`, `scan_udp` and `scan_domain` are generators yielding
`ScanResult` objects, whose string form is the output line shown above.

## Limits

The scanner only decides open, closed or filtered from the replies to
bare probes; it does not detect services or versions, and it scans one
port at a time.

## Tests

```
pip install .[test]
pytest
```
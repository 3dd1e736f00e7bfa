"""TCP SYN and UDP port scanning over IPv4 and IPv6 raw sockets."""

__version__ = "0.1.0"
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "l4scan"
version = "0.1.0"
description = "Layer 4 TCP SYN and UDP port scanner using raw sockets over IPv4 and IPv6"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = ["port scanner", "tcp", "udp", "syn scan", "raw sockets", "ipv6", "network"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
l4scan = "l4scan.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["l4scan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

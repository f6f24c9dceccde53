[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "countinggame"
version = "1.0.0"
description = "A classroom counting game played over TCP and UDP multicast"
requires-python = ">=3.10"
dependencies = []
keywords = ["education", "networking", "tcp", "udp", "multicast", "classroom", "sockets"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
counting-tcp-client = "countinggame.tcp_client:main"
counting-tcp-server = "countinggame.tcp_server:main"
counting-udp-peer = "countinggame.udp_peer:main"
counting-udp-presenter = "countinggame.udp_presenter:main"
multicast-chat = "countinggame.multicast_chat:main"

[tool.hatch.build.targets.wheel]
packages = ["countinggame"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

"""A classroom counting game over TCP and UDP multicast, with a multicast chat."""

__version__ = "1.0.0"
"""apreset: countdown-aware DHCP reset client for captive-portal access points."""

__version__ = "0.1.0"

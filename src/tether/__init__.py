"""Tether: resource-provider protocol for infrastructure orchestration."""

__version__ = "0.1.0"

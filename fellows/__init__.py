"""Verified membership directory for the Polkadot Fellowship."""

__version__ = "0.1.0"

"""Webcash HD wallet library: key derivation, storage backends, server client and recovery."""

__version__ = "0.3.19"
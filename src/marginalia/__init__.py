"""Structural editing and automatic linking for Markdown note vaults."""

__version__ = "0.1.0"

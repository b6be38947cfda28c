"""Fusion Portal - client dashboard service for audio provenance verification."""

__version__ = "0.3.0"

"""Oblivious Ride Matching - privacy-preserving nearest-driver selection."""

__version__ = "0.1.0"

"""Mersenne-31 field arithmetic with sum-check and GKR lookup arguments."""

__version__ = "0.1.0"
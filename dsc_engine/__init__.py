"""Collateralized-debt engine for the DSC dollar-pegged synthetic."""

__version__ = "0.1.0"

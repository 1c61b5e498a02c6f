"""Versioned asset registrar for the policy-analysis thesis."""

__version__ = "0.1.0"

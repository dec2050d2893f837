"""Synthetic identity traffic generator for risk-evaluation services."""

__version__ = "0.1.0"

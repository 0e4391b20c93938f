"""Statusboard: service probes, rolling stats and automatic incidents."""

__version__ = "0.1.0"

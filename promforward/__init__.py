"""Scrape local Prometheus metrics and forward them via remote write."""

__version__ = "0.1.0"

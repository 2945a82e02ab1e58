"""Closure Tree: a REST service for trees stored in a closure table."""

__version__ = "0.1.0"

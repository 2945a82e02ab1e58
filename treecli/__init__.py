"""Command-line front-end for the Closure Tree service."""

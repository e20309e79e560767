"""Command-line entry points for the Awair exporter."""

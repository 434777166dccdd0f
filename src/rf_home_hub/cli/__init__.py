"""Command-line interface for the RF home hub."""

"""Command line interface for the sensor statistics pipeline."""

"""Command model."""

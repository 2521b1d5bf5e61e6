"""Execution backends for the error-rate simulation."""

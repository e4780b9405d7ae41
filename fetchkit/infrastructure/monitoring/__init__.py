"""Logging setup for the fetchkit CLI and embedding applications."""

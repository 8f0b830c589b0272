"""Wrappers around external tools and configuration files."""

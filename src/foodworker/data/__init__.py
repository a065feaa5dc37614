"""Packaged data files (default stock table)."""

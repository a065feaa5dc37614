"""Core primitives shared by the worker: errors, logging, settings."""

"""Shared kernel: money, errors, events, configuration and logging."""

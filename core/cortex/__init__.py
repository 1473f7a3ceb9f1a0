"""Cortex Core - context assembly and conversation engine for knowledge workspaces."""

__version__ = "0.1.0"

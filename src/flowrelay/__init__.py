"""Keyword relay to a hosted Langflow flow."""

__version__ = "1.0.0"

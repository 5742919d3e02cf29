"""Model introspection and resource metadata compilation."""

__version__ = "0.1.0"

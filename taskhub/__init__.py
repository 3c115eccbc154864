"""taskhub: multi-tenant task tracking backend core."""

__version__ = "1.0.0"

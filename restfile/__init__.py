"""restfile - run HTTP requests described in plain-text request files."""

__version__ = "0.1.0"

"""autocontent: AI content generation backend with an async job queue."""

__version__ = "0.1.0"

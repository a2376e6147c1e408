"""Transaction extraction and logging for mediation pipelines."""

__version__ = "0.1.0"

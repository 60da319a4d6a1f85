"""Wait for asynchronous static-analysis tasks and enforce their quality gate."""

__version__ = "0.1.0"

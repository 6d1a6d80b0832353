"""Package a project directory into bounded text artifacts for LLM context windows."""

__version__ = "0.1.0"

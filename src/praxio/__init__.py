"""Delegate prompts to CLI LLM agents behind one response shape."""

__version__ = "0.1.0"

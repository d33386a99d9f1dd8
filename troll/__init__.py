"""Troll: a chat agent that routes requests to tools through an LLM."""

__version__ = "0.1.0"

"""Clients for external services."""
from .sentiment import SentimentClient, SentimentError  # noqa: F401

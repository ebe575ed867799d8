"""Outbound connectors."""

from .email_connector import EmailConnector, get_email_connector

__all__ = ["EmailConnector", "get_email_connector"]

"""CreditDesk: prepaid credit billing service."""

__version__ = "0.3.0"

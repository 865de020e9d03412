"""API Gate: API key issuance, request authorization and request analytics."""

__version__ = "1.0.0"

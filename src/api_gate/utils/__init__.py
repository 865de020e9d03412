"""Utility functions and classes."""

from .keys import generate_api_key, mask_api_key
from .logging import get_logger, setup_logging

__all__ = ["generate_api_key", "mask_api_key", "get_logger", "setup_logging"]

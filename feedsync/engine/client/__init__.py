"""Source client SPI and implementations."""

from .base import BaseSourceClient
from .http_client import HttpSourceClient

__all__ = ["BaseSourceClient", "HttpSourceClient"]

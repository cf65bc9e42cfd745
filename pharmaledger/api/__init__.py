"""
API module for PharmaLedger.

Provides the FastAPI application wrapping SupplyChainLedger:
- JSON endpoints for users, pharmaceuticals, events and rewards
- Error taxonomy mapped onto HTTP status codes
- CORS handling for browser clients
"""

from .app import create_app
from .config import Settings

__all__ = [
    "create_app",
    "Settings",
]

"""
Operator tools for PharmaLedger.

- store_cli: Read-only inspection of a store file
"""

from .store_cli import StoreCLI, main

__all__ = ["StoreCLI", "main"]

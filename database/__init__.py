"""
Database module for the Rise Testnet Bot
Stores accounts, runs and per-action statistics
"""

from .database import Database

__all__ = ['Database']

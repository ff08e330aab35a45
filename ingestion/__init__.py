"""
Data Ingestion Module

Turns raw provider payloads into the engine's input shapes:
- Lenient numeric coercion and first-present field lookup
- Configurable field aliases for market data quotes
"""

__version__ = "0.1.0"

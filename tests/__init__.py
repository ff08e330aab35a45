"""
Test Suite for the portfolio analytics engine

Includes:
- Unit tests for statistics, coercion, metrics and projections
- Integration tests for the analysis job and CLI
- Shared JSON fixtures under tests/fixtures/
"""

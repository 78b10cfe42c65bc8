"""
Tests Package - Unit Tests

Test structure:
- tests/unit/ - Fast, isolated unit tests (no network, no AWS)
- tests/fixtures/ - Shared pytest fixtures (fake reporting API, recording store)
- tests/consts.py - Example API payloads
- tests/conftest.py - Pytest configuration
"""

"""
Test Suite for the Inventory Loader

This package contains tests organized by category:
- unit/: Unit tests for individual modules
- integration/: Coordinator end-to-end behaviour and the HTTP functions
- conftest.py: Shared fakes (data client, clock, sleep) and fixtures
"""

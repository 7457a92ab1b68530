"""Fake backends used by the integration tests."""

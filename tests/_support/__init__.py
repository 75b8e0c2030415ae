"""Shared helpers for cashflow-core tests."""

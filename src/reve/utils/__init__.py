"""Shared utilities for reve."""

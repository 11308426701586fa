"""Shared utilities for maploader."""

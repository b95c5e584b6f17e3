"""Utility helpers for prompt-version."""

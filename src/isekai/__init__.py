"""Isekai Awards API."""

"""Ultramagnus report chat server."""

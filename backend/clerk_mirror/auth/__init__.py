"""Caller authentication for the read endpoints."""

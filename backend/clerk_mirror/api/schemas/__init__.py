"""Pydantic request, response and webhook payload schemas."""

"""Shared enums and result models."""

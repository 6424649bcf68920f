"""Shared utilities for the backend."""
from utils.serialize import camelize, iso

__all__ = [
    "camelize",
    "iso",
]

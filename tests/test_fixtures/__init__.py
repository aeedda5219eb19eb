"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .image_factory import ImageFactory

__all__ = ["ImageFactory"]

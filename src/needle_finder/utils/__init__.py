"""Utility functions for needle-finder."""

from needle_finder.utils.image import decode_grayscale, ensure_grayscale, load_grayscale

__all__ = ["decode_grayscale", "ensure_grayscale", "load_grayscale"]

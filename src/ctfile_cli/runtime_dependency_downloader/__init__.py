"""
Runtime dependency downloader.

This package handles:
1. Downloading dependency archives
2. Extracting the executable
3. Setting the executable bit
"""

from .downloader import BinaryProvisioner, ensure_binary

__all__ = ["BinaryProvisioner", "ensure_binary"]

"""Pytest configuration: puts the repository root on sys.path."""

import os
import sys

# Make onedrive_client and http_utils importable without installing the package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

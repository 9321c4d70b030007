"""
SafeStore Backend Package

This package contains the FastAPI application and supporting modules for
encrypted file storage: name obfuscation, at-rest encryption and the
storage directory that doubles as the catalog.
"""

from .main import app  # noqa: F401

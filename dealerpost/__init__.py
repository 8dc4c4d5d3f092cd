"""Prompt relay for AI-generated car dealership promotional posts."""

__version__ = "0.1.0"

#!/usr/bin/env python3
"""
CLI entry point for retrocal.cli module.

This allows running: python -m retrocal.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()

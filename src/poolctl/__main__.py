#!/usr/bin/env python3
"""
Entry point for running poolctl as a module
This allows running: python -m poolctl
"""

from poolctl.cli import app

if __name__ == "__main__":
    app()

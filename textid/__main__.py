#!/usr/bin/env python3
"""
Entry point for running textid as a module.

This allows the package to be run with:
    python -m textid
"""

from textid.cli import main

if __name__ == "__main__":
    main()

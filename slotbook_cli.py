#!/usr/bin/env python3
"""
Convenience entry point for running slotbook directly.

Usage: python slotbook_cli.py [command] [options]
"""

from slotbook.cli.app import app

if __name__ == "__main__":
    app()

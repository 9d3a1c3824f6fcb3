#!/usr/bin/env python3
"""
Main entry point for the tab CLI.

Delegates to the UI layer in tabcli.ui.cli to keep the console script
mapping stable.
"""

from tabcli.ui.cli import run as tab


if __name__ == "__main__":
    tab()

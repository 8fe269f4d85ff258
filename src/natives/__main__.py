"""
CLI entry point for natives package.

Usage:
    python -m natives <command> [options]
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())

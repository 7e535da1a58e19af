"""
Main entry point for running sopsmeta as a module.

Usage:
    python -m sopsmeta <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())

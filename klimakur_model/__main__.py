"""
Main entry point for evaluating dashboard sessions.

Usage:
    python -m klimakur_model
    python -m klimakur_model configs/high_unknown_cost.json --rows
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())

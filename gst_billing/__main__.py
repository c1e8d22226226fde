"""
Main entry point for running gst_billing as a module.

Usage:
    python -m gst_billing [options]
"""
import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())

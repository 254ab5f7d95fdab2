"""
Main entry point for running the package as a module.

Usage:
    python -m imgsizer run /path/to/images
    python -m imgsizer serve /path/to/images
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())

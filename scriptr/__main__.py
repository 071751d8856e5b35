"""
Entry point for running scriptr as a module: python -m scriptr
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())

"""Entry point for running the health check as a module."""

import sys
from . import main

if __name__ == "__main__":
    sys.exit(main())

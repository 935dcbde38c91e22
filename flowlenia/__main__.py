"""
Allow running as module: python -m flowlenia
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())

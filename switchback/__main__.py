#!/usr/bin/env python3
"""
switchback entry point for running as a module: python3 -m switchback
"""

import sys
from switchback.cli import main

if __name__ == '__main__':
    sys.exit(main())

#!/usr/bin/env python3
"""
Entry point for cloudvol CLI tool.
"""

import sys

from cloudvol.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())

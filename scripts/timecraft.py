#!/usr/bin/env python3
"""
timecraft - static timing checker.

Usage:
    python scripts/timecraft.py check design.yml
    python scripts/timecraft.py list-primitives
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from timecraft.cli import main

if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
HarScout - find a described API call in a HAR trace

This is a convenience wrapper for running from a source checkout.
The actual implementation is in src/harscout/cli.py

Usage:
    python harscout-cli.py find session.har -d "weather for a city"
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from harscout.cli import main

if __name__ == '__main__':
    main()

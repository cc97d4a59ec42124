#!/usr/bin/env python3
"""
Start the equipment health prediction pipeline from a source checkout
"""

import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from equipment_health.cli import main


if __name__ == '__main__':
    sys.exit(main())

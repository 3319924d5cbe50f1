"""Pytest configuration for the blockgen test suite."""

import sys
from pathlib import Path

# Add repository root to path for blockgen imports
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

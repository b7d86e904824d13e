"""Configure pytest for birdcard tests."""

import pathlib
import sys

# Add the repository root to sys.path so tests can import birdcard.app
sys.path.insert(0, str(pathlib.Path(__file__).parent))

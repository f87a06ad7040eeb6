"""Root conftest - puts the repo root on sys.path so `grant_tracker.X` imports."""
import sys
from pathlib import Path

_parent = Path(__file__).resolve().parent.parent

if str(_parent) not in sys.path:
    sys.path.insert(0, str(_parent))

# Make the project root importable so tests can use 'tests.fixtures' helpers
# without installing the package.
import os
import sys
from pathlib import Path

ROOT = Path(__file__).parent.resolve()
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Constants read the environment at import time; keep backoff short under test.
os.environ.setdefault("RECONNECT_BASE_DELAY", "0")
os.environ.setdefault("RECONNECT_MAX_DELAY", "0")

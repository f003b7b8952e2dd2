from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

# Keep application data written during tests out of the user's home directory.
os.environ.setdefault("L10NSYNC_HOME", tempfile.mkdtemp(prefix="l10nsync-tests-"))

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

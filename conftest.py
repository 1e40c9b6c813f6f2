"""Root conftest.py - makes the local qaflow package and example checklists importable."""

from __future__ import annotations

import sys
from pathlib import Path

# Insert the project root at the front of sys.path so that `import qaflow`
# resolves to the local source tree and `examples` is importable without an install.
_project_root = str(Path(__file__).parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

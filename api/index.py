from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from eagle_brief.api import create_app


app = create_app(config_path=str(ROOT / "config" / "eagle_brief.yaml"))

from __future__ import annotations

import time
import uuid


def new_id(prefix: str) -> str:
    """Return a sortable, collision-resistant identifier like ``exec_1700000000000_1a2b3c4d5``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

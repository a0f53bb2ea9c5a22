from __future__ import annotations

from typing import Optional


def human_age(seconds: Optional[float]) -> str:
    """Coarse age string for display: 42s, 5m, 3h, 2d. Unknown age is "?"."""
    if seconds is None:
        return "?"
    s = max(0, int(seconds))
    if s < 60:
        return f"{s}s"
    if s < 3600:
        return f"{s // 60}m"
    if s < 86400:
        return f"{s // 3600}h"
    return f"{s // 86400}d"

"""Category label normalization.

Raw labels look like ``"A"``, ``"b"``, ``" C "`` or ``"A类"``. Only A, B and C
take part in a search; D is a known category that is always excluded.
"""

from __future__ import annotations

import re
from typing import Any

SEARCH_CATEGORIES = ("A", "B", "C")
CATEGORY_SUFFIX = "类"

_LABEL_RE = re.compile(rf"^([ABCD])(?:{CATEGORY_SUFFIX})?$", re.IGNORECASE)


def normalize_category(label: Any) -> str | None:
    """Return the canonical uppercase category letter, or None if unrecognized."""
    if not isinstance(label, str):
        return None
    m = _LABEL_RE.match(label.strip())
    return m.group(1).upper() if m else None

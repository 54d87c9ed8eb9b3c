"""Recognise literal "lat,lon" location strings."""
from __future__ import annotations

import re
from typing import Optional

from georesolve.storage.models import Coordinate

_NUMBER = r"[-+]?\d+(?:\.\d+)?"
COORDINATE_RE = re.compile(
    rf"""^\s*
    (?P<lat>{_NUMBER})
    \s*,\s*
    (?P<lon>{_NUMBER})
    \s*$""",
    re.VERBOSE,
)


def parse_coordinate(text: Optional[str]) -> Optional[Coordinate]:
    """Return the coordinate encoded in ``text`` or None when it is not a valid pair.

    Out-of-range values are not coordinates; callers fall through to address
    resolution for them.
    """
    if not text:
        return None
    match = COORDINATE_RE.match(str(text))
    if not match:
        return None
    try:
        return Coordinate(float(match.group("lat")), float(match.group("lon")))
    except ValueError:
        return None

"""Version comparison for plugin manifests."""

import re

_LEADING_INT = re.compile(r"\s*(\d+)")


def _parts(version: str) -> list[int]:
    """Numeric components of a version, ignoring any "-suffix"."""
    core = (version or "").split("-", 1)[0]
    parts = []
    for piece in core.split("."):
        match = _LEADING_INT.match(piece)
        parts.append(int(match.group(1)) if match else 0)
    return parts


def compare_versions(current: str, latest: str) -> int:
    """Compare two loosely structured version strings.

    Pre-release and build suffixes introduced by "-" are ignored, missing
    components count as 0 and unparsable components count as 0.

    Args:
        current: Version to compare
        latest: Version to compare against

    Returns:
        -1 if current < latest, 0 if equal, 1 if current > latest
    """
    a = _parts(current)
    b = _parts(latest)
    length = max(len(a), len(b))
    a += [0] * (length - len(a))
    b += [0] * (length - len(b))

    for x, y in zip(a, b):
        if x < y:
            return -1
        if x > y:
            return 1
    return 0

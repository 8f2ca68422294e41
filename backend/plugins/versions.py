"""
Version ordering for registry plugin versions.

Versions are dot-separated numeric segments ("1.10.0"). Missing trailing
segments count as zero, so "1.2" == "1.2.0".
"""

from typing import Iterable, Optional, Sequence

from plugins.errors import InvalidVersionFormat


def parse_version(text: str) -> tuple[int, ...]:
    """Split a version string into integer segments.

    Trailing zero segments are dropped so that tuple comparison matches
    zero-padded segment-by-segment comparison.

    Raises:
        InvalidVersionFormat: empty text, empty segment, or a segment that
            is not a non-negative integer.
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidVersionFormat(f"Invalid version string: {text!r}")

    segments = []
    for part in text.strip().split("."):
        if not (part.isascii() and part.isdigit()):
            raise InvalidVersionFormat(
                f"Invalid version string: {text!r} (segment {part!r} is not numeric)"
            )
        segments.append(int(part))

    while segments and segments[-1] == 0:
        segments.pop()
    return tuple(segments)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as version ``a`` is lower, equal or higher than ``b``."""
    left, right = parse_version(a), parse_version(b)
    if left == right:
        return 0
    return 1 if left > right else -1


def installable(versions: Iterable) -> list:
    """Entries that are not marked deprecated, in their original order."""
    return [v for v in versions if not getattr(v, "deprecated", False)]


def select_latest(versions: Sequence) -> Optional[object]:
    """Pick the highest non-deprecated version record.

    ``versions`` holds objects with ``version`` and ``deprecated`` attributes
    (``PluginVersion`` from the registry manifest). Returns None when nothing
    installable remains.
    """
    candidates = installable(versions)
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    # sorted() is stable: among equal versions the last one encountered wins
    ordered = sorted(candidates, key=lambda v: parse_version(v.version))
    return ordered[-1]

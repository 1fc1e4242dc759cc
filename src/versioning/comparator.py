"""Natural ordering for version-like directory and file names.

``2.10`` sorts after ``2.9``: digit runs are compared as integers, text runs
case-insensitively, and a name that is a prefix of another sorts first.
"""

import re
from functools import cmp_to_key
from typing import Iterable, List, Tuple, Union

_SEGMENT_RE = re.compile(r"[0-9]+|[^\W\d_]+")

SegmentKey = Tuple[int, Union[int, str]]


def split_segments(value: str) -> List[str]:
    """Split at non-alphanumeric and digit/letter boundaries.

    >>> split_segments("1.10.0-beta2")
    ['1', '10', '0', 'beta', '2']
    """
    return _SEGMENT_RE.findall(value)


def version_sort_key(value: str) -> Tuple[SegmentKey, ...]:
    """Sort key: numeric segments as ints, text segments case-folded.

    Numbers sort before text at the same position.
    """
    key: List[SegmentKey] = []
    for segment in split_segments(value):
        if segment.isdigit():
            key.append((0, int(segment)))
        else:
            key.append((1, segment.casefold()))
    return tuple(key)


def compare_versions(left: str, right: str) -> int:
    """Three-way comparison returning -1, 0 or 1.

    Names with equal segment keys (``1.0`` vs ``1-0``, ``A`` vs ``a``) fall
    back to ordinal comparison so distinct strings never compare equal.
    """
    left_key = version_sort_key(left)
    right_key = version_sort_key(right)
    if left_key != right_key:
        return -1 if left_key < right_key else 1
    if left == right:
        return 0
    return -1 if left < right else 1


version_cmp_key = cmp_to_key(compare_versions)


def newest_first(values: Iterable[str]) -> List[str]:
    """Return ``values`` ordered newest to oldest."""
    return sorted(values, key=version_cmp_key, reverse=True)

from __future__ import annotations

from typing import Iterator, NamedTuple, Tuple


class Point(NamedTuple):
    """
    Pixel coordinate (row, col).

    Equality and hashing are by value, so a Point built from the same
    coordinates twice is the same key in any set or dict.
    """

    row: int
    col: int


# 3x3 neighborhood offsets, center included, row-major.
NEIGHBORHOOD_3X3: Tuple[Tuple[int, int], ...] = tuple(
    (dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1)
)


def in_bounds(row: int, col: int, shape: Tuple[int, int]) -> bool:
    height, width = shape[:2]
    return 0 <= row < height and 0 <= col < width


def neighborhood(point: Point, shape: Tuple[int, int]) -> Iterator[Point]:
    """
    Yield the in-bounds cells of the 3x3 window around point (point itself included).

    Args:
        point: Window center.
        shape: (height, width) of the grid.

    Returns:
        Iterator of Points in row-major order; out-of-bounds cells are skipped.
    """
    for dr, dc in NEIGHBORHOOD_3X3:
        r = point.row + dr
        c = point.col + dc
        if in_bounds(r, c, shape):
            yield Point(r, c)

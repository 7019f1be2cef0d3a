from __future__ import annotations

FREE_MAX_LEVEL = 2
PREMIUM_MAX_LEVEL = 4
ALL_LEVELS: tuple[int, ...] = (1, 2, 3, 4)

# Percent of the session per level, keyed by how many levels are played.
LEVEL_SPLITS: dict[int, tuple[int, ...]] = {
    1: (100,),
    2: (60, 40),
    3: (40, 35, 25),
    4: (30, 30, 25, 15),
}


def max_level(is_premium: bool) -> int:
    return PREMIUM_MAX_LEVEL if is_premium else FREE_MAX_LEVEL


def is_level_accessible(level: int, is_premium: bool) -> bool:
    return 1 <= level <= max_level(is_premium)


def accessible_levels(is_premium: bool) -> tuple[int, ...]:
    return tuple(level for level in ALL_LEVELS if level <= max_level(is_premium))


def calculate_level_distribution(
    *,
    count: int,
    start_level: int,
    is_premium: bool,
) -> dict[int, int]:
    """Split ``count`` challenges over the levels from ``start_level`` upwards.

    Every bucket but the last is ``ceil(count * share)`` capped by what is
    left; the last bucket takes the remainder, so the values always sum to
    ``count``.
    """
    if count < 1:
        raise ValueError("count must be >= 1")
    top = max_level(is_premium)
    effective_start = max(1, min(int(start_level), top))
    levels = list(range(effective_start, top + 1))
    shares = LEVEL_SPLITS[len(levels)]

    distribution: dict[int, int] = {}
    remaining = count
    for position, level in enumerate(levels):
        if position == len(levels) - 1:
            distribution[level] = remaining
            break
        bucket = min(-(-count * shares[position] // 100), remaining)
        distribution[level] = bucket
        remaining -= bucket
    return distribution

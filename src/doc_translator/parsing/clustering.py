"""One-dimensional clustering of page coordinates into contiguous bands."""

from collections.abc import Iterable


def cluster(positions: Iterable[float], threshold: float) -> list[list[float]]:
    """Group numeric positions into bands separated by gaps of at least ``threshold``.

    Values are sorted ascending and a new cluster starts whenever the gap to
    the previous value is ``>= threshold``. A second pass merges neighbouring
    clusters whose facing edges are closer than ``threshold``.

    Args:
        positions: Coordinates to cluster; duplicates are kept.
        threshold: Minimum gap that separates two clusters. Must be positive.

    Returns:
        Clusters ordered left-to-right, each sorted ascending. Every input
        value appears in exactly one cluster.

    Raises:
        ValueError: If ``threshold`` is not positive.
    """
    if threshold <= 0:
        raise ValueError("threshold must be positive")

    values = sorted(positions)
    if not values:
        return []

    raw_clusters: list[list[float]] = [[values[0]]]
    for value in values[1:]:
        if value - raw_clusters[-1][-1] >= threshold:
            raw_clusters.append([value])
        else:
            raw_clusters[-1].append(value)

    accepted: list[list[float]] = [raw_clusters[0]]
    for current in raw_clusters[1:]:
        if current[0] - accepted[-1][-1] < threshold:
            accepted[-1].extend(current)
        else:
            accepted.append(current)
    return accepted


def span(values: list[float]) -> float:
    """Width covered by a cluster."""
    return values[-1] - values[0] if values else 0.0

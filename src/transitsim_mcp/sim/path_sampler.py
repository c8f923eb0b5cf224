"""Sample positions along a route polyline by fraction of its length."""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Sequence, Tuple

from .geometry import LatLon, cumulative_distances_km, initial_bearing_deg


class PathSample(NamedTuple):
    latitude: float
    longitude: float
    segment_index: int


def normalize_fraction(fraction: float) -> float:
    """Wrap any fraction into [0, 1)."""
    return ((fraction % 1.0) + 1.0) % 1.0


def sample_path(
    points: Sequence[LatLon],
    cumulative: Sequence[float],
    fraction: float,
) -> PathSample:
    """
    Interpolate the coordinate at ``fraction`` of the path length.

    Args:
        points: Path points, at least two.
        cumulative: Running distance for each point (see ``cumulative_distances_km``).
        fraction: Progress along the path; values outside [0, 1) wrap around.

    Returns:
        The interpolated position and the index of the segment it lies on.
    """
    if len(points) < 2:
        raise ValueError("path needs at least two points to sample")

    f = normalize_fraction(fraction)
    target = f * cumulative[-1]

    last_segment = len(points) - 2
    i = 0
    while i < last_segment and cumulative[i + 1] < target:
        i += 1

    seg_start = cumulative[i]
    seg_length = cumulative[i + 1] - seg_start
    seg_fraction = 0.0 if seg_length <= 0 else (target - seg_start) / seg_length

    lat1, lon1 = points[i]
    lat2, lon2 = points[i + 1]
    return PathSample(
        latitude=lat1 + (lat2 - lat1) * seg_fraction,
        longitude=lon1 + (lon2 - lon1) * seg_fraction,
        segment_index=i,
    )


@dataclass(frozen=True)
class RoutePath:
    """An immutable polyline with its precomputed cumulative distances."""

    points: Tuple[LatLon, ...]
    cumulative_km: Tuple[float, ...] = field(repr=False)

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "RoutePath":
        pts = tuple((float(p[0]), float(p[1])) for p in points)
        return cls(points=pts, cumulative_km=tuple(cumulative_distances_km(pts)))

    @property
    def total_length_km(self) -> float:
        return self.cumulative_km[-1] if self.cumulative_km else 0.0

    @property
    def is_sampleable(self) -> bool:
        return len(self.points) >= 2

    def sample(self, fraction: float) -> PathSample:
        return sample_path(self.points, self.cumulative_km, fraction)

    def segment_bearing(self, segment_index: int) -> float:
        """Bearing of travel along a segment, 0.0 for zero-length segments."""
        (lat1, lon1), (lat2, lon2) = self.points[segment_index], self.points[segment_index + 1]
        if (lat1, lon1) == (lat2, lon2):
            return 0.0
        return initial_bearing_deg(lat1, lon1, lat2, lon2)

    def reversed(self) -> "RoutePath":
        return RoutePath.from_points(list(reversed(self.points)))

    def as_list(self) -> List[List[float]]:
        return [[lat, lon] for lat, lon in self.points]

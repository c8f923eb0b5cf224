"""Smooth marker movement between successive vehicle snapshots."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .geometry import LatLon, haversine_distance_m

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 1000.0
REFRESH_DURATION_MS = 2000.0
SNAP_THRESHOLD_M = 500.0
FRAME_INTERVAL_S = 1 / 60

Clock = Callable[[], float]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class AnimationState:
    """Where a marker is drawn and where it is heading."""

    position: LatLon
    start: Optional[LatLon] = None
    target: Optional[LatLon] = None
    started_at_ms: float = 0.0
    duration_ms: float = DEFAULT_DURATION_MS

    @property
    def active(self) -> bool:
        return self.target is not None


def begin_animation(
    state: AnimationState,
    target: LatLon,
    now_ms: float,
    duration_ms: float = DEFAULT_DURATION_MS,
    snap_threshold_m: float = SNAP_THRESHOLD_M,
) -> AnimationState:
    """
    Point ``state`` at a new target, replacing any animation in progress.

    The animation starts from whatever is displayed right now. Jumps longer
    than ``snap_threshold_m`` are applied immediately instead of animated.
    """
    start = state.position
    target = (float(target[0]), float(target[1]))

    if duration_ms <= 0 or haversine_distance_m(start[0], start[1], target[0], target[1]) > snap_threshold_m:
        state.position = target
        state.start = state.target = None
        return state

    state.start = start
    state.target = target
    state.started_at_ms = now_ms
    state.duration_ms = duration_ms
    return state


def step_animation(state: AnimationState, now_ms: float) -> bool:
    """
    Advance ``state`` to ``now_ms``.

    Returns:
        True while the animation still has frames to run.
    """
    if state.target is None or state.start is None:
        return False

    elapsed = max(0.0, now_ms - state.started_at_ms)
    progress = min(elapsed / state.duration_ms, 1.0)

    if progress >= 1.0:
        state.position = state.target
        state.start = state.target = None
        return False

    (lat1, lon1), (lat2, lon2) = state.start, state.target
    state.position = (lat1 + (lat2 - lat1) * progress, lon1 + (lon2 - lon1) * progress)
    return True


class InterpolatedMarker:
    """
    A displayed vehicle position that glides towards each new target.

    Frames are driven by an asyncio task ticking every ``frame_interval``
    seconds. Only one task drives a marker at a time; a new target cancels
    the running one.
    """

    def __init__(
        self,
        position: LatLon,
        snap_threshold_m: float = SNAP_THRESHOLD_M,
        frame_interval: float = FRAME_INTERVAL_S,
        clock: Clock = _monotonic_ms,
        on_frame: Optional[Callable[[LatLon], None]] = None,
    ):
        self.state = AnimationState(position=(float(position[0]), float(position[1])))
        self.snap_threshold_m = snap_threshold_m
        self.frame_interval = frame_interval
        self._clock = clock
        self._on_frame = on_frame
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def position(self) -> LatLon:
        return self.state.position

    @property
    def animating(self) -> bool:
        return self._task is not None and not self._task.done()

    def update_target(self, position: LatLon, duration_ms: float = DEFAULT_DURATION_MS) -> None:
        if self._stopped:
            raise RuntimeError("marker has been stopped")
        # Raises outside an event loop before the state is touched
        loop = asyncio.get_running_loop()
        self._cancel_task()
        begin_animation(self.state, position, self._clock(), duration_ms, self.snap_threshold_m)
        if self.state.active:
            self._task = loop.create_task(self._run())
        else:
            self._emit()

    def tick(self) -> bool:
        """Advance one frame by the marker's clock."""
        running = step_animation(self.state, self._clock())
        self._emit()
        return running

    def stop(self) -> None:
        self._cancel_task()
        self.state.start = self.state.target = None
        self._stopped = True

    async def wait_idle(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def _emit(self) -> None:
        if self._on_frame is not None:
            self._on_frame(self.state.position)

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        try:
            while self.tick():
                await asyncio.sleep(self.frame_interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error animating marker: {e}", exc_info=True)
            self.state.position = self.state.target or self.state.position
            self.state.start = self.state.target = None


def start_interpolated_marker(position: LatLon, **kwargs) -> InterpolatedMarker:
    return InterpolatedMarker(position, **kwargs)


class MarkerRegistry:
    """Displayed markers keyed by vehicle id."""

    def __init__(
        self,
        duration_ms: float = REFRESH_DURATION_MS,
        snap_threshold_m: float = SNAP_THRESHOLD_M,
        frame_interval: float = FRAME_INTERVAL_S,
        clock: Clock = _monotonic_ms,
    ):
        self.duration_ms = duration_ms
        self.snap_threshold_m = snap_threshold_m
        self.frame_interval = frame_interval
        self._clock = clock
        self._markers: Dict[str, InterpolatedMarker] = {}

    def __contains__(self, vehicle_id: str) -> bool:
        return vehicle_id in self._markers

    def __len__(self) -> int:
        return len(self._markers)

    def get(self, vehicle_id: str) -> Optional[InterpolatedMarker]:
        return self._markers.get(vehicle_id)

    def add(self, vehicle_id: str, position: LatLon) -> InterpolatedMarker:
        if vehicle_id in self._markers:
            raise KeyError(f"marker already registered: {vehicle_id}")
        marker = start_interpolated_marker(
            position,
            snap_threshold_m=self.snap_threshold_m,
            frame_interval=self.frame_interval,
            clock=self._clock,
        )
        self._markers[vehicle_id] = marker
        return marker

    def update(self, vehicle_id: str, position: LatLon, duration_ms: Optional[float] = None) -> InterpolatedMarker:
        marker = self._markers[vehicle_id]
        marker.update_target(position, self.duration_ms if duration_ms is None else duration_ms)
        return marker

    def remove(self, vehicle_id: str) -> None:
        marker = self._markers.pop(vehicle_id, None)
        if marker is not None:
            marker.stop()

    def sync(self, vehicles: Iterable) -> None:
        """
        Make the registry mirror a full snapshot.

        New vehicles appear where they are reported, known vehicles animate
        to their new position, and vehicles missing from the snapshot are
        removed.
        """
        seen = set()
        for vehicle in vehicles:
            vehicle_id = vehicle.vehicle_id
            seen.add(vehicle_id)
            position = (vehicle.latitude, vehicle.longitude)
            if vehicle_id in self._markers:
                self.update(vehicle_id, position)
            else:
                self.add(vehicle_id, position)

        for vehicle_id in [v for v in self._markers if v not in seen]:
            self.remove(vehicle_id)
        logger.debug(f"Marker registry synced: {len(self._markers)} markers")

    def positions(self) -> Dict[str, LatLon]:
        return {vehicle_id: marker.position for vehicle_id, marker in self._markers.items()}

    def vehicle_ids(self) -> List[str]:
        return list(self._markers)

    def clear(self) -> None:
        for vehicle_id in list(self._markers):
            self.remove(vehicle_id)

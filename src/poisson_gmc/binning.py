"""
Binning Engine
==============
Maps raw event times onto a fixed grid of bins.

The intensity is modelled as piecewise constant on the grid, so the only
statistics the sampler needs from the data are the per-bin event counts and
the bin widths.

Usage:
    grid = Grid.uniform(T0=0.0, T=3.0, N=3)
    counts = bin_counts([0.5, 1.2, 1.9, 2.3, 2.8], grid)   # -> [1, 2, 2]
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence

from .errors import InvalidGridError, InvalidObservationError


@dataclass(frozen=True)
class Grid:
    """Strictly increasing breakpoints b[0..N] partitioning [T0, T].

    Bin k is [b[k], b[k+1]); the last bin also contains its top boundary.
    """
    breaks: np.ndarray

    def __post_init__(self):
        breaks = np.array(self.breaks, dtype=np.float64)

        if breaks.ndim != 1 or breaks.size < 2:
            raise InvalidGridError(
                f"Grid needs at least 2 breakpoints, got shape {breaks.shape}")
        if not np.all(np.isfinite(breaks)):
            raise InvalidGridError("Grid breakpoints must be finite")
        if np.any(np.diff(breaks) <= 0):
            raise InvalidGridError("Grid breakpoints must be strictly increasing")

        breaks.setflags(write=False)
        object.__setattr__(self, 'breaks', breaks)

    @classmethod
    def uniform(cls, T0: float, T: float, N: int) -> 'Grid':
        """Equal-width grid of N bins on [T0, T]."""
        if int(N) != N or N < 1:
            raise InvalidGridError(f"Number of bins must be a positive integer, got {N}")
        if not T > T0:
            raise InvalidGridError(f"Grid end T={T} must exceed start T0={T0}")
        return cls(np.linspace(T0, T, int(N) + 1))

    @property
    def N(self) -> int:
        return self.breaks.size - 1

    @property
    def T0(self) -> float:
        return float(self.breaks[0])

    @property
    def T(self) -> float:
        return float(self.breaks[-1])

    @property
    def widths(self) -> np.ndarray:
        return np.diff(self.breaks)

    @property
    def midpoints(self) -> np.ndarray:
        return 0.5 * (self.breaks[:-1] + self.breaks[1:])

    def __len__(self) -> int:
        return self.N


def as_observations(observations: Sequence[float]) -> np.ndarray:
    """Convert event times to a read-only float array, checking order.

    Raises:
        InvalidObservationError: empty, non-finite, or not sorted ascending
    """
    times = np.array(observations, dtype=np.float64).ravel()

    if times.size == 0:
        raise InvalidObservationError("No observations given")
    if not np.all(np.isfinite(times)):
        raise InvalidObservationError("Observations must be finite")
    if np.any(np.diff(times) < 0):
        raise InvalidObservationError("Observations must be sorted in ascending order")

    times.setflags(write=False)
    return times


def bin_counts(observations: Sequence[float], grid: Grid) -> np.ndarray:
    """Count observations per bin.

    Args:
        observations: Sorted event times, pooled over all realizations
        grid: Bin breakpoints

    Returns:
        [N] int array, counts[k] = #{t : b[k] <= t < b[k+1]} (last bin closed)

    Raises:
        InvalidObservationError: an observation lies outside [T0, T]
    """
    times = as_observations(observations)

    if times[0] < grid.T0 or times[-1] > grid.T:
        raise InvalidObservationError(
            f"Observations span [{times[0]:g}, {times[-1]:g}], "
            f"outside the grid [{grid.T0:g}, {grid.T:g}]")

    idx = np.searchsorted(grid.breaks, times, side='right') - 1
    # t == T falls past the last bin
    idx[idx == grid.N] = grid.N - 1

    return np.bincount(idx, minlength=grid.N).astype(np.int64)

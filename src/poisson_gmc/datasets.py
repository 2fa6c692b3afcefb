"""
Example datasets and Poisson-process simulation.

Datasets are returned as (observations, parameters, metadata) triples;
``parameters`` holds keyword arguments for ``inference()``:

    data = load_dataset('disasters')
    result = inference(data.observations, **data.parameters)
"""

import numpy as np
from typing import Callable, Dict, NamedTuple, Optional, Union

from .errors import InvalidParameterError


class ExampleDataset(NamedTuple):
    observations: np.ndarray
    parameters: Dict
    metadata: Dict


# Annual counts of British coal mining explosions killing ten or more,
# 1851-1961 (Jarrett, 1979).
DISASTER_COUNTS = np.array([
    4, 5, 4, 0, 1, 4, 3, 4, 0, 6, 3, 3, 4, 0, 2, 6,
    3, 3, 5, 4, 5, 3, 1, 4, 4, 1, 5, 5, 3, 4, 2, 5,
    2, 2, 3, 4, 2, 1, 3, 2, 2, 1, 1, 1, 1, 3, 0, 0,
    1, 0, 1, 1, 0, 0, 3, 1, 0, 3, 2, 2, 0, 1, 1, 1,
    0, 1, 0, 1, 0, 0, 0, 2, 1, 0, 0, 0, 1, 1, 0, 2,
    3, 3, 1, 1, 2, 1, 1, 1, 1, 2, 4, 2, 0, 0, 1, 4,
    0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 1, 0, 1])
DISASTER_FIRST_YEAR = 1851


def disaster_times() -> np.ndarray:
    """Disaster dates in decimal years, spread evenly within each year."""
    times = []
    for offset, count in enumerate(DISASTER_COUNTS):
        if count == 0:
            continue
        year = DISASTER_FIRST_YEAR + offset
        times.extend(year + (np.arange(count) + 0.5) / count)
    return np.asarray(times)


def simulate_poisson_process(intensity: Union[float, Callable[[float], float]],
                             T0: float,
                             T: float,
                             max_intensity: Optional[float] = None,
                             n: int = 1,
                             rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Draw sorted event times of a Poisson process on [T0, T].

    A constant intensity is sampled directly; a callable intensity is
    sampled by thinning a homogeneous process with rate max_intensity.

    Args:
        intensity: Constant rate or function of time
        T0, T: Observation window
        max_intensity: Upper bound of a callable intensity on [T0, T]
        n: Number of independent realizations, pooled into one sorted array
        rng: Random generator

    Returns:
        Sorted array of event times
    """
    if rng is None:
        rng = np.random.default_rng()
    if not T > T0:
        raise InvalidParameterError(f"Need T0 < T, got T0={T0}, T={T}")
    if int(n) != n or n < 1:
        raise InvalidParameterError(f"n must be a positive integer, got {n}")

    if callable(intensity):
        if max_intensity is None or max_intensity <= 0:
            raise InvalidParameterError("A callable intensity needs a positive max_intensity")
        rate = float(max_intensity)
    else:
        rate = float(intensity)
        if rate < 0:
            raise InvalidParameterError(f"Intensity must be non-negative, got {rate}")

    n_candidates = rng.poisson(rate * n * (T - T0))
    candidates = rng.uniform(T0, T, size=n_candidates)

    if callable(intensity):
        values = np.array([intensity(x) for x in candidates], dtype=np.float64)
        if np.any(values > rate):
            raise InvalidParameterError("intensity exceeds max_intensity inside [T0, T]")
        keep = rng.random(n_candidates) * rate <= values
        candidates = candidates[keep]

    return np.sort(candidates)


def _disasters() -> ExampleDataset:
    T0 = float(DISASTER_FIRST_YEAR)
    T = float(DISASTER_FIRST_YEAR + len(DISASTER_COUNTS))
    return ExampleDataset(
        observations=disaster_times(),
        parameters={'title': 'British coal mining disasters',
                    'T0': T0, 'T': T, 'N': 37},
        metadata={'source': 'Jarrett (1979), annual counts 1851-1961',
                  'unit': 'year',
                  'n_events': int(DISASTER_COUNTS.sum())},
    )


def _constant(seed: int = 2024) -> ExampleDataset:
    rate, T0, T = 10.0, 0.0, 10.0
    times = simulate_poisson_process(rate, T0, T, rng=np.random.default_rng(seed))
    return ExampleDataset(
        observations=times,
        parameters={'title': 'Constant intensity', 'T0': T0, 'T': T, 'N': 10},
        metadata={'true_intensity': rate, 'seed': seed},
    )


DATASETS = {
    'disasters': _disasters,
    'constant': _constant,
}


def load_dataset(name: str) -> ExampleDataset:
    """Load a named example dataset ('disasters' or 'constant')."""
    if name not in DATASETS:
        raise ValueError(f"Unknown dataset: {name}. Available: {sorted(DATASETS)}")
    return DATASETS[name]()

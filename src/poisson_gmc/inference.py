"""
Inference entry points
======================
Estimate the intensity of a Poisson process from sorted event times.

Usage:
    from poisson_gmc import inference, summarize_posterior
    from poisson_gmc.datasets import load_dataset

    data = load_dataset('disasters')
    result = inference(data.observations, **data.parameters, seed=1)
    summary = summarize_posterior(result)

    # Several independent chains, e.g. for convergence diagnostics
    chains = run_chains(data.observations, n_chains=4, seed=1, **data.parameters)
"""

import numpy as np
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .binning import Grid, as_observations, bin_counts
from .errors import InvalidParameterError
from .prior import default_alpha_prior
from .sampler import BetaIndMode, GMCSampler, InferenceConfig, InferenceResult
from .summary import burn_in_index, summarize_posterior, write_summary


def default_n_bins(n_observations: int) -> int:
    """Default grid resolution: a quarter of the event count, at most 50 bins."""
    return min(n_observations // 4, 50)


def inference(observations: Sequence[float],
              title: str = 'Poisson process',
              summaryfile: Optional[Union[str, Path]] = None,
              T0: float = 0.0,
              T: Optional[float] = None,
              n: int = 1,
              N: Optional[int] = None,
              samples: Iterable[int] = range(1, 30001),
              alpha1: float = 0.1,
              beta1: float = 0.1,
              prior_on_alpha=None,
              tau: float = 0.7,
              alpha_ind: float = 0.1,
              beta_ind: float = 0.1,
              empirical_bayes: bool = False,
              verbose: bool = True,
              seed: Optional[int] = None,
              rng: Optional[np.random.Generator] = None,
              cancel_event=None) -> InferenceResult:
    """Sample the posterior of a piecewise-constant intensity under a GMC prior.

    Args:
        observations: Event times sorted ascending, all in [T0, T]. When the
            times pool n independent realizations, pass them merged and sorted.
        title: Name of the run, carried into the result
        summaryfile: If given, write the per-bin posterior summary CSV here
        T0: Start of the observation window
        T: End of the observation window (default: last observation)
        n: Number of aggregated independent realizations
        N: Number of equal-width bins (default: min(len(observations)//4, 50))
        samples: Increasing iteration indices to retain; the run lasts
            max(samples) iterations
        alpha1, beta1: Gamma prior on the first coefficient
        prior_on_alpha: Frozen scipy distribution for alpha (default Exponential, mean 10)
        tau: Random-walk scale of the log(alpha) proposal
        alpha_ind, beta_ind: Independent-Gamma baseline prior
        empirical_bayes: Re-estimate beta_ind from psi every iteration
        verbose: Print progress and show a progress bar
        seed: Seed for numpy's default_rng (ignored if rng is given)
        rng: Explicit random generator
        cancel_event: Object with is_set(), checked between iterations

    Returns:
        InferenceResult with retained psi samples (rows = iterations,
        columns = bins), alpha and beta_ind traces, the grid and the config.

    Raises:
        InvalidObservationError, InvalidGridError, InvalidParameterError:
            before any iteration runs
        NumericDegeneracyError: a full conditional degenerated mid-run
        RunCancelledError: cancel_event was set
    """
    times = as_observations(observations)

    if T is None:
        T = float(times[-1])
    if N is None:
        N = default_n_bins(times.size)

    config = InferenceConfig(
        T=T,
        N=N,
        title=title,
        T0=T0,
        n=n,
        samples=samples,
        alpha1=alpha1,
        beta1=beta1,
        prior_on_alpha=prior_on_alpha if prior_on_alpha is not None else default_alpha_prior(),
        tau=tau,
        alpha_ind=alpha_ind,
        beta_ind=beta_ind,
        beta_ind_mode=BetaIndMode.EMPIRICAL_BAYES if empirical_bayes else BetaIndMode.FIXED,
        verbose=verbose,
        seed=seed,
    )

    n_keep = len(config.samples)
    if summaryfile is not None and n_keep - burn_in_index(n_keep) < 2:
        raise InvalidParameterError(
            f"Retention schedule keeps {n_keep} samples; a summary file needs "
            f"at least 2 after discarding the first half")

    grid = Grid.uniform(config.T0, config.T, config.N)
    counts = bin_counts(times, grid)

    if verbose:
        mode = config.beta_ind_mode.value
        print(f"[Inference] {title}: {times.size} observations on [{config.T0:g}, {config.T:g}]")
        print(f"[Inference] N={config.N} bins, n={config.n}, tau={config.tau}, "
              f"beta_ind={config.beta_ind} ({mode})")

    sampler = GMCSampler(counts, grid, config, rng=rng)
    result = sampler.run(cancel_event=cancel_event)

    if summaryfile is not None:
        path = write_summary(summarize_posterior(result), summaryfile)
        if verbose:
            print(f"[Inference] Summary written to {path}")

    return result


# ═══════════════════════════════════════════════════════════════
# Independent chains
# ═══════════════════════════════════════════════════════════════

def _run_chain(observations: np.ndarray, seed_seq: np.random.SeedSequence,
               kwargs: dict) -> InferenceResult:
    return inference(observations, rng=np.random.default_rng(seed_seq), **kwargs)


def run_chains(observations: Sequence[float],
               n_chains: int = 4,
               seed: Optional[int] = None,
               max_workers: Optional[int] = None,
               **kwargs) -> List[InferenceResult]:
    """Run independent chains, in parallel worker processes by default.

    Each chain gets its own child of SeedSequence(seed) and its own chain
    state; nothing mutable is shared between chains.

    Args:
        observations: Event times (see inference)
        n_chains: Number of chains
        seed: Root seed; the same seed reproduces every chain
        max_workers: Worker processes (1 runs the chains sequentially here)
        **kwargs: Forwarded to inference(); verbose defaults to False

    Returns:
        List of InferenceResult, in chain order
    """
    if int(n_chains) != n_chains or n_chains < 1:
        raise InvalidParameterError(f"n_chains must be a positive integer, got {n_chains}")
    for name in ('rng', 'seed', 'cancel_event', 'summaryfile'):
        if name in kwargs:
            raise InvalidParameterError(f"'{name}' cannot be forwarded to individual chains")

    times = np.array(as_observations(observations))
    kwargs.setdefault('verbose', False)
    seeds = np.random.SeedSequence(seed).spawn(int(n_chains))

    if max_workers == 1:
        return [_run_chain(times, s, kwargs) for s in seeds]

    results: List[Optional[InferenceResult]] = [None] * len(seeds)
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(_run_chain, times, s, kwargs): idx
            for idx, s in enumerate(seeds)
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    if kwargs['verbose']:
        rates = ', '.join(f"{r.acceptance_rate:.1%}" for r in results)
        print(f"[Inference] {len(results)} chains complete. alpha acceptance: {rates}")

    return results

"""
Convergence diagnostics across independent chains.

Wraps post-burn-in samples from several InferenceResults into an
arviz.InferenceData and reports R-hat and effective sample size for alpha
and every psi coefficient. Requires the optional ``arviz`` dependency
(``pip install poisson-gmc[diagnostics]``).
"""

import numpy as np
from typing import Dict, Sequence

try:
    import arviz as az
    ARVIZ_AVAILABLE = True
except ImportError:
    ARVIZ_AVAILABLE = False
    az = None

from .errors import InsufficientSamplesError, InvalidParameterError
from .sampler import InferenceResult
from .summary import burn_in_index


def _require_arviz():
    if not ARVIZ_AVAILABLE:
        raise ImportError("ArviZ required. Install with: pip install poisson-gmc[diagnostics]")


def to_inference_data(results: Sequence[InferenceResult]) -> 'az.InferenceData':
    """Stack post-burn-in samples of several chains into InferenceData.

    All chains must come from the same grid and retention schedule.
    """
    _require_arviz()

    if len(results) == 0:
        raise InvalidParameterError("No chains given")
    n_samples = results[0].n_samples
    N = results[0].N
    for r in results[1:]:
        if r.n_samples != n_samples or r.N != N:
            raise InvalidParameterError(
                "Chains must share the same number of bins and retained samples")

    start = burn_in_index(n_samples)
    if n_samples - start < 2:
        raise InsufficientSamplesError(
            f"Only {n_samples - start} post-burn-in samples per chain; need at least 2")

    psi = np.stack([r.psi_samples[start:] for r in results])      # (chain, draw, bin)
    alpha = np.stack([r.alpha_samples[start:] for r in results])  # (chain, draw)

    return az.from_dict(
        posterior={'psi': psi, 'alpha': alpha},
        coords={'bin': np.arange(N)},
        dims={'psi': ['bin']},
    )


def convergence_diagnostics(results: Sequence[InferenceResult],
                            rhat_threshold: float = 1.01,
                            verbose: bool = True) -> Dict:
    """R-hat and bulk ESS for alpha and each psi[k].

    Returns:
        Dict with 'rhat' and 'ess' (each {'alpha': float, 'psi': [N] array}),
        'max_rhat' and 'converged' (max R-hat below rhat_threshold)
    """
    idata = to_inference_data(results)

    rhat = az.rhat(idata)
    ess = az.ess(idata)

    diag = {
        'rhat': {'alpha': float(rhat['alpha'].values),
                 'psi': np.asarray(rhat['psi'].values, dtype=float)},
        'ess': {'alpha': float(ess['alpha'].values),
                'psi': np.asarray(ess['psi'].values, dtype=float)},
    }
    diag['max_rhat'] = float(max(diag['rhat']['alpha'], np.nanmax(diag['rhat']['psi'])))
    diag['converged'] = diag['max_rhat'] < rhat_threshold

    if verbose:
        n_total = idata.posterior.sizes['chain'] * idata.posterior.sizes['draw']
        print(f"\n[Diagnostics] {len(results)} chains, {n_total} post-burn-in draws")
        print(f"  R-hat (target < {rhat_threshold}):")
        alpha_status = "✓" if diag['rhat']['alpha'] < rhat_threshold else "✗ WARNING"
        print(f"    alpha: {diag['rhat']['alpha']:.4f} {alpha_status}")
        worst = int(np.nanargmax(diag['rhat']['psi']))
        psi_status = "✓" if diag['rhat']['psi'][worst] < rhat_threshold else "✗ WARNING"
        print(f"    psi (worst, bin {worst}): {diag['rhat']['psi'][worst]:.4f} {psi_status}")
        print(f"  Effective Sample Size (ESS):")
        print(f"    alpha: {diag['ess']['alpha']:.0f} ({diag['ess']['alpha'] / n_total:.1%} of {n_total})")
        print(f"    psi (min): {np.nanmin(diag['ess']['psi']):.0f}")

    return diag

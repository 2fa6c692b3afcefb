"""
MCMC Driver — Gibbs / Metropolis sampler for the GMC intensity model
====================================================================
Draws posterior samples of the piecewise intensity coefficients psi and the
smoothing hyperparameter alpha.

Per-iteration cycle:
    1. zeta | psi, alpha      exact inverse-Gamma draws (all latents at once)
       psi  | zeta, alpha     exact Gamma draws (all bins at once)
    2. alpha | psi            random-walk Metropolis on log(alpha)
    3. beta_ind               re-estimated from psi in empirical-Bayes mode
    4. snapshot               if the iteration is in the retention schedule

Given zeta the coefficients are conditionally independent, so step 1 is a
synchronous sweep: every bin sees its neighbours' values from the previous
iteration through the latents. The chain is a single-threaded loop; run
independent chains in separate processes (see inference.run_chains).

Usage:
    grid = Grid.uniform(0.0, 10.0, 10)
    config = InferenceConfig(T=10.0, N=10, samples=range(1, 5001), seed=1)
    sampler = GMCSampler(bin_counts(times, grid), grid, config)
    result = sampler.run()
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple
import warnings

from tqdm import tqdm

from .binning import Grid
from .errors import InvalidParameterError, NumericDegeneracyError, RunCancelledError
from .prior import (
    GMCHyperparameters,
    default_alpha_prior,
    empirical_bayes_beta_ind,
    initial_psi,
    log_posterior_ratio_alpha,
    psi_conditional_params,
    zeta_conditional_params,
)


# ═══════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════

class BetaIndMode(Enum):
    """How beta_ind evolves during a run."""
    FIXED = 'fixed'                      # Stays at the configured value
    EMPIRICAL_BAYES = 'empirical_bayes'  # Re-estimated from psi every iteration


@dataclass(frozen=True)
class InferenceConfig:
    """Immutable settings for one inference run."""
    T: float                       # End of the observation window
    N: int                         # Number of bins
    title: str = 'Poisson process'
    T0: float = 0.0                # Start of the observation window
    n: int = 1                     # Aggregated independent realizations
    samples: Tuple[int, ...] = field(default=tuple(range(1, 30001)), repr=False)

    # Gamma Markov chain prior
    alpha1: float = 0.1
    beta1: float = 0.1
    prior_on_alpha: object = field(default_factory=default_alpha_prior, compare=False)
    tau: float = 0.7               # Random-walk scale on log(alpha)

    # Independent-Gamma baseline
    alpha_ind: float = 0.1
    beta_ind: float = 0.1
    beta_ind_mode: BetaIndMode = BetaIndMode.FIXED

    # Run control
    verbose: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        try:
            raw = tuple(self.samples)
            samples = tuple(int(i) for i in raw)
        except (TypeError, ValueError):
            raise InvalidParameterError(
                "samples must be a sequence of integer iteration indices") from None
        if any(r != s for r, s in zip(raw, samples)):
            raise InvalidParameterError("samples must contain whole iteration indices")
        object.__setattr__(self, 'samples', samples)
        object.__setattr__(self, 'beta_ind_mode', BetaIndMode(self.beta_ind_mode))
        self.validate()

    def validate(self):
        """Check every setting; raises InvalidParameterError on the first problem."""
        if int(self.N) != self.N or self.N < 1:
            raise InvalidParameterError(f"N must be a positive integer, got {self.N}")
        if int(self.n) != self.n or self.n < 1:
            raise InvalidParameterError(f"n must be a positive integer, got {self.n}")
        if not (np.isfinite(self.T0) and np.isfinite(self.T)) or self.T <= self.T0:
            raise InvalidParameterError(f"Need T0 < T, got T0={self.T0}, T={self.T}")

        for name in ('alpha1', 'beta1', 'alpha_ind', 'beta_ind', 'tau'):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise InvalidParameterError(f"{name} must be positive, got {value}")

        if len(self.samples) == 0:
            raise InvalidParameterError("Retention schedule 'samples' is empty")
        if self.samples[0] < 1:
            raise InvalidParameterError("Iteration indices in 'samples' start at 1")
        if any(b <= a for a, b in zip(self.samples, self.samples[1:])):
            raise InvalidParameterError("Retention schedule 'samples' must be strictly increasing")

        if not callable(getattr(self.prior_on_alpha, 'logpdf', None)):
            raise InvalidParameterError("prior_on_alpha must provide a logpdf method")

    @property
    def n_iterations(self) -> int:
        return self.samples[-1]

    @property
    def hyperparameters(self) -> GMCHyperparameters:
        return GMCHyperparameters(alpha1=self.alpha1, beta1=self.beta1,
                                  alpha_ind=self.alpha_ind)


# ═══════════════════════════════════════════════════════════════
# Chain state and result
# ═══════════════════════════════════════════════════════════════

@dataclass
class ChainState:
    """Mutable state carried from one iteration to the next."""
    psi: np.ndarray       # [N] intensity coefficients
    zeta: np.ndarray      # [N-1] latents linking consecutive bins
    alpha: float          # Coupling / smoothness
    beta_ind: float       # Independent-baseline rate

    def copy(self) -> 'ChainState':
        return ChainState(psi=self.psi.copy(), zeta=self.zeta.copy(),
                          alpha=float(self.alpha), beta_ind=float(self.beta_ind))

    def is_valid(self) -> bool:
        """True if every quantity is finite and strictly positive."""
        return bool(np.all(np.isfinite(self.psi)) and np.all(self.psi > 0)
                    and np.all(np.isfinite(self.zeta)) and np.all(self.zeta > 0)
                    and np.isfinite(self.alpha) and self.alpha > 0
                    and np.isfinite(self.beta_ind) and self.beta_ind > 0)


@dataclass(frozen=True)
class InferenceResult:
    """Retained samples plus everything needed to interpret them.

    psi_samples has one row per retained iteration and one column per bin.
    """
    psi_samples: np.ndarray        # [S, N]
    alpha_samples: np.ndarray      # [S]
    beta_ind_samples: np.ndarray   # [S]
    iterations: np.ndarray         # [S] retained iteration indices
    grid: Grid
    counts: np.ndarray             # [N]
    title: str
    config: InferenceConfig
    acceptance_rate: float         # Fraction of accepted alpha moves
    final_state: ChainState

    def __post_init__(self):
        for name in ('psi_samples', 'alpha_samples', 'beta_ind_samples',
                     'iterations', 'counts'):
            arr = np.array(getattr(self, name))
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def N(self) -> int:
        return self.grid.N

    @property
    def n_samples(self) -> int:
        return self.psi_samples.shape[0]


# ═══════════════════════════════════════════════════════════════
# Sampler
# ═══════════════════════════════════════════════════════════════

class GMCSampler:
    """Gibbs sampler with a Metropolis step for alpha.

    Owns its chain state and random stream exclusively; one instance
    corresponds to one chain.
    """

    def __init__(self,
                 counts: Sequence[int],
                 grid: Grid,
                 config: InferenceConfig,
                 rng: Optional[np.random.Generator] = None):
        """
        Args:
            counts: [N] events per bin (see binning.bin_counts)
            grid: Bin breakpoints
            config: Run configuration
            rng: Random generator (default: default_rng(config.seed))
        """
        counts = np.asarray(counts)
        if counts.shape != (grid.N,):
            raise InvalidParameterError(
                f"counts has shape {counts.shape}, grid has {grid.N} bins")
        if grid.N != config.N:
            raise InvalidParameterError(f"Grid has {grid.N} bins but config.N={config.N}")
        if np.any(counts < 0):
            raise InvalidParameterError("Bin counts must be non-negative")

        self.counts = counts.astype(np.float64)
        self.grid = grid
        self.widths = grid.widths
        self.config = config
        self.hyper = config.hyperparameters
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)

        self.n_proposed = 0
        self.n_accepted = 0
        self.state = self._initial_state()

        self._update_beta_ind = {
            BetaIndMode.FIXED: self._keep_beta_ind,
            BetaIndMode.EMPIRICAL_BAYES: self._estimate_beta_ind,
        }[config.beta_ind_mode]

    def _initial_state(self) -> ChainState:
        """Deterministic start: independent-baseline posterior means, alpha = 1."""
        cfg = self.config
        psi = initial_psi(self.counts, self.widths, cfg.alpha_ind, cfg.beta_ind, cfg.n)
        return ChainState(psi=psi,
                          zeta=0.5 * (psi[:-1] + psi[1:]),
                          alpha=1.0,
                          beta_ind=float(cfg.beta_ind))

    @property
    def acceptance_rate(self) -> float:
        return self.n_accepted / self.n_proposed if self.n_proposed else 0.0

    # ── per-iteration updates ────────────────────────────────────────────────

    def step(self, iteration: int):
        """Advance the chain by one full iteration."""
        self._update_latents(iteration)
        self._update_psi(iteration)
        self._update_alpha()
        self._update_beta_ind()

    def _update_latents(self, iteration: int):
        if self.grid.N < 2:
            return
        shape, scale = zeta_conditional_params(self.state.psi, self.state.alpha)
        _check_gamma_params(shape, scale, 'zeta', iteration)
        # InvGamma(a, s) = s / Gamma(a, 1)
        draws = self.rng.gamma(shape)
        zeta = scale / draws
        _check_draws(zeta, 'zeta', iteration)
        self.state.zeta = zeta

    def _update_psi(self, iteration: int):
        s = self.state
        shape, rate = psi_conditional_params(self.counts, self.widths, s.zeta, s.alpha,
                                             self.hyper, s.beta_ind, self.config.n)
        _check_gamma_params(shape, rate, 'psi', iteration)
        psi = self.rng.gamma(shape, 1.0 / rate)
        _check_draws(psi, 'psi', iteration)
        s.psi = psi

    def _update_alpha(self):
        s = self.state
        alpha_proposed = s.alpha * np.exp(self.config.tau * self.rng.standard_normal())

        if 0.0 < alpha_proposed < np.inf:
            log_ratio = log_posterior_ratio_alpha(alpha_proposed, s.alpha, s.psi,
                                                  self.config.prior_on_alpha)
        else:
            log_ratio = -np.inf

        self.n_proposed += 1
        if self.rng.random() < np.exp(min(0.0, log_ratio)):
            s.alpha = float(alpha_proposed)
            self.n_accepted += 1

    def _keep_beta_ind(self):
        pass

    def _estimate_beta_ind(self):
        self.state.beta_ind = empirical_bayes_beta_ind(self.state.psi, self.config.alpha_ind)

    # ── driver loop ──────────────────────────────────────────────────────────

    def run(self, cancel_event=None) -> InferenceResult:
        """Iterate up to max(samples), keeping snapshots at scheduled iterations.

        Args:
            cancel_event: Optional object with is_set() (e.g. threading.Event),
                checked once before every iteration

        Returns:
            InferenceResult

        Raises:
            NumericDegeneracyError: a full conditional degenerated
            RunCancelledError: cancel_event was set
        """
        cfg = self.config
        schedule = cfg.samples
        n_keep = len(schedule)
        N = self.grid.N

        psi_out = np.empty((n_keep, N))
        alpha_out = np.empty(n_keep)
        beta_out = np.empty(n_keep)

        if cfg.verbose:
            print(f"[GMC] {cfg.title}: {int(self.counts.sum())} events in {N} bins "
                  f"on [{self.grid.T0:g}, {self.grid.T:g}], n={cfg.n}")
            print(f"[GMC] Running {cfg.n_iterations} iterations, keeping {n_keep}")

        pos = 0
        iterator = tqdm(range(1, cfg.n_iterations + 1), desc=f"[GMC] {cfg.title}",
                        disable=not cfg.verbose, leave=False)
        for i in iterator:
            if cancel_event is not None and cancel_event.is_set():
                iterator.close()
                raise RunCancelledError(i)

            self.step(i)

            if schedule[pos] == i:
                psi_out[pos] = self.state.psi
                alpha_out[pos] = self.state.alpha
                beta_out[pos] = self.state.beta_ind
                pos += 1

        rate = self.acceptance_rate
        if cfg.verbose:
            print(f"[GMC] Sampling complete. alpha acceptance rate: {rate:.1%}")
        if self.n_proposed >= 100 and not 0.05 <= rate <= 0.95:
            warnings.warn(f"alpha acceptance rate {rate:.1%} is extreme; "
                          f"consider changing tau (currently {cfg.tau})")

        return InferenceResult(
            psi_samples=psi_out,
            alpha_samples=alpha_out,
            beta_ind_samples=beta_out,
            iterations=np.asarray(schedule, dtype=np.int64),
            grid=self.grid,
            counts=self.counts.astype(np.int64),
            title=cfg.title,
            config=cfg,
            acceptance_rate=rate,
            final_state=self.state.copy(),
        )


def _check_gamma_params(shape: np.ndarray, rate_or_scale: np.ndarray,
                        quantity: str, iteration: int):
    """Raise NumericDegeneracyError at the first non-positive parameter."""
    bad = ~((shape > 0) & (rate_or_scale > 0)
            & np.isfinite(shape) & np.isfinite(rate_or_scale))
    if np.any(bad):
        k = int(np.flatnonzero(bad)[0])
        raise NumericDegeneracyError(
            f"Degenerate Gamma full conditional: shape={shape[k]!r}, "
            f"rate/scale={rate_or_scale[k]!r}",
            bin_index=k, iteration=iteration, quantity=quantity)


def _check_draws(values: np.ndarray, quantity: str, iteration: int):
    """Raise NumericDegeneracyError if a draw underflowed to 0 or overflowed."""
    bad = ~((values > 0) & np.isfinite(values))
    if np.any(bad):
        k = int(np.flatnonzero(bad)[0])
        raise NumericDegeneracyError(
            f"Draw left the support of the Gamma family: {values[k]!r}",
            bin_index=k, iteration=iteration, quantity=quantity)

"""
poisson_gmc - Non-parametric Bayesian intensity estimation for Poisson processes

The intensity of a non-homogeneous Poisson process is modelled as piecewise
constant on a fixed grid, with a Gamma Markov Chain prior smoothing
neighbouring coefficients. Posterior samples are drawn by a Gibbs sampler
with a Metropolis step for the smoothing hyperparameter.
"""

__version__ = "0.1.0"

# Binning
from .binning import Grid, bin_counts

# Prior
from .prior import (
    GMCHyperparameters,
    full_conditional_psi,
    log_posterior_ratio_alpha,
    empirical_bayes_beta_ind,
)

# Sampler
from .sampler import (
    BetaIndMode,
    ChainState,
    GMCSampler,
    InferenceConfig,
    InferenceResult,
)

# Summaries
from .summary import (
    PosteriorSummary,
    summarize_posterior,
    summarize_independent,
    write_summary,
)

# Entry points
from .inference import inference, run_chains

# Convergence diagnostics (ArviZ is optional; calls raise ImportError without it)
from .diagnostics import convergence_diagnostics

# Errors
from .errors import (
    PoissonGMCError,
    InvalidGridError,
    InvalidObservationError,
    InvalidParameterError,
    NumericDegeneracyError,
    InsufficientSamplesError,
    RunCancelledError,
)

# Example data
from .datasets import load_dataset, simulate_poisson_process

__all__ = [
    "Grid",
    "bin_counts",
    "GMCHyperparameters",
    "full_conditional_psi",
    "log_posterior_ratio_alpha",
    "empirical_bayes_beta_ind",
    "BetaIndMode",
    "ChainState",
    "GMCSampler",
    "InferenceConfig",
    "InferenceResult",
    "PosteriorSummary",
    "summarize_posterior",
    "summarize_independent",
    "write_summary",
    "inference",
    "run_chains",
    "convergence_diagnostics",
    "PoissonGMCError",
    "InvalidGridError",
    "InvalidObservationError",
    "InvalidParameterError",
    "NumericDegeneracyError",
    "InsufficientSamplesError",
    "RunCancelledError",
    "load_dataset",
    "simulate_poisson_process",
]

"""
Exception types raised by the inference pipeline.

Validation errors (grid, observations, parameters) are raised before any
MCMC iteration runs. ``NumericDegeneracyError`` and ``RunCancelledError``
abort a run that is already in progress.
"""

from typing import Optional


class PoissonGMCError(Exception):
    """Base class for all errors raised by poisson_gmc."""


class InvalidGridError(PoissonGMCError, ValueError):
    """Grid has fewer than 2 breakpoints or is not strictly increasing."""


class InvalidObservationError(PoissonGMCError, ValueError):
    """Event times are unsorted, non-finite, or fall outside [T0, T]."""


class InvalidParameterError(PoissonGMCError, ValueError):
    """A hyperparameter, the retention schedule, N or n is invalid."""


class InsufficientSamplesError(PoissonGMCError, ValueError):
    """Too few post-burn-in samples to summarize the posterior."""


class NumericDegeneracyError(PoissonGMCError, ArithmeticError):
    """A Gamma full conditional has non-positive parameters or a draw degenerated.

    Attributes:
        bin_index: Index of the offending bin (or latent variable)
        iteration: MCMC iteration at which it happened (None outside a run)
        quantity: Which variable was being drawn ('psi' or 'zeta')
    """

    def __init__(self, message: str, bin_index: Optional[int] = None,
                 iteration: Optional[int] = None, quantity: str = 'psi'):
        self.bin_index = bin_index
        self.iteration = iteration
        self.quantity = quantity
        where = f"{quantity}[{bin_index}]" if bin_index is not None else quantity
        if iteration is not None:
            where += f" at iteration {iteration}"
        super().__init__(f"{message} ({where})")


class RunCancelledError(PoissonGMCError, RuntimeError):
    """The caller cancelled a run between two iterations."""

    def __init__(self, iteration: int):
        self.iteration = iteration
        super().__init__(f"Inference run cancelled before iteration {iteration}")

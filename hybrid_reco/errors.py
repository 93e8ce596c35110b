"""Exceptions raised at the scoring entry points."""

import numbers


class InvalidParameterError(ValueError):
    """Raised when k, n or alpha violate the scoring contract."""


def validate_parameters(k: int, n: int, alpha: float) -> None:
    """
    Validate the public scoring parameters.

    Args:
        k: Number of neighbors for collaborative filtering
        n: Number of recommendations to return
        alpha: Collaborative weight in the hybrid blend

    Raises:
        InvalidParameterError: If any parameter is out of range
    """
    if isinstance(k, bool) or not isinstance(k, numbers.Integral) or k <= 0:
        raise InvalidParameterError(f"k must be a positive integer, got {k!r}")
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n <= 0:
        raise InvalidParameterError(f"n must be a positive integer, got {n!r}")
    if isinstance(alpha, bool) or not isinstance(alpha, numbers.Real):
        raise InvalidParameterError(f"alpha must be a number, got {alpha!r}")
    if not 0 <= alpha <= 1:
        raise InvalidParameterError(f"alpha must be in [0, 1], got {alpha}")

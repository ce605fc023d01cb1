"""Exception hierarchy for token-bayes.

Storage failures are not wrapped here: whatever the counter store raises
(e.g. ``redis.exceptions.RedisError``) reaches the caller unchanged.
"""

from __future__ import annotations


class TokenBayesError(Exception):
    """Base class for errors raised by token-bayes itself."""


class DegenerateStateError(TokenBayesError, ArithmeticError):
    """The stored counts cannot produce a probability.

    Raised instead of letting ``NaN`` or ``inf`` leak out of the math, e.g.
    when classifying before anything was trained.
    """


class ConfigurationError(TokenBayesError, ValueError):
    """A setting could not be parsed or is out of range."""

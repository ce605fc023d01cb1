"""Runtime settings read from the environment and an optional ``.env`` file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from .classifier import ClassifierConfig
from .errors import ConfigurationError
from .storage import DEFAULT_PREFIX
from .vocabulary import VocabularySizeTransform

ENV_PREFIX = "TOKEN_BAYES_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


@dataclass
class Settings:
    """Connection and classifier settings.

    Attributes:
        redis_url: URL of the Redis server holding the counters.
        prefix: Key prefix shared by classifiers using the same counters.
        binarized: Count each distinct token once per example.
        uniform_priors: Give every category the same prior.
        k: Laplace smoothing constant.
        log_vocab: Smooth with ``ln(|vocabulary|)`` instead of ``|vocabulary|``.
        log_level: Logging level name for the CLI.
    """

    redis_url: str = "redis://localhost:6379/0"
    prefix: str = DEFAULT_PREFIX
    binarized: bool = False
    uniform_priors: bool = False
    k: float = 1.0
    log_vocab: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from ``TOKEN_BAYES_*`` environment variables.

        Args:
            dotenv: Load a ``.env`` file first (existing variables win).

        Raises:
            ConfigurationError: If a variable cannot be parsed.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        defaults = cls()
        log_level = os.getenv(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"{ENV_PREFIX}LOG_LEVEL is not a logging level: {log_level!r}")
        return cls(
            redis_url=os.getenv(ENV_PREFIX + "REDIS_URL", defaults.redis_url),
            prefix=os.getenv(ENV_PREFIX + "PREFIX", defaults.prefix),
            binarized=_env_bool("BINARIZED", defaults.binarized),
            uniform_priors=_env_bool("UNIFORM_PRIORS", defaults.uniform_priors),
            k=_env_float("K", defaults.k),
            log_vocab=_env_bool("LOG_VOCAB", defaults.log_vocab),
            log_level=log_level,
        )

    def classifier_config(self) -> ClassifierConfig:
        """Classifier options described by these settings.

        Raises:
            ConfigurationError: If ``k`` is not positive.
        """
        try:
            return ClassifierConfig(
                binarized=self.binarized,
                assume_uniform_priors=self.uniform_priors,
                k=self.k,
                vocabulary_size_transform=(
                    VocabularySizeTransform.NATURAL_LOG
                    if self.log_vocab
                    else VocabularySizeTransform.IDENTITY
                ),
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

"""Sampler and analysis settings."""
from dataclasses import dataclass, fields, asdict
from typing import Any, Mapping, Optional

__all__ = ["SamplerSettings", "AnalysisSettings"]


@dataclass
class SamplerSettings:
    """Settings shared by every MCMC engine.

    Attributes:
        num_samples: Draws kept per chain.
        burn_in: Warm-up iterations discarded per chain (PyMC ``tune``).
        num_chains: Independent chains.
        thin: Keep every ``thin``-th draw.
        proposal_std: Random-walk step for Metropolis-Hastings; ``None``
            derives it from a normal approximation of the posterior.
        seed: Seed for reproducible runs.
    """

    num_samples: int = 5000
    burn_in: int = 1000
    num_chains: int = 4
    thin: int = 1
    proposal_std: Optional[float] = None
    seed: Optional[int] = None

    def __post_init__(self):
        if self.num_samples < 1:
            raise ValueError("num_samples must be >= 1")
        if self.burn_in < 0:
            raise ValueError("burn_in must be >= 0")
        if self.num_chains < 1:
            raise ValueError("num_chains must be >= 1")
        if self.thin < 1:
            raise ValueError("thin must be >= 1")
        if self.proposal_std is not None and self.proposal_std <= 0:
            raise ValueError("proposal_std must be > 0")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SamplerSettings":
        """Builds settings from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown sampler settings: {unknown}")
        return cls(**dict(values))

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnalysisSettings:
    """What an analysis reports in addition to the sampler settings."""

    level: float = 0.95
    interval_method: str = "equal_tailed"
    backend: str = "metropolis"
    num_predictive: int = 10_000
    sampler: Optional[SamplerSettings] = None

    def __post_init__(self):
        if not 0.0 < self.level < 1.0:
            raise ValueError("level must lie in (0, 1)")
        if self.interval_method not in ("equal_tailed", "hpd"):
            raise ValueError("interval_method must be 'equal_tailed' or 'hpd'")
        if self.num_predictive < 1:
            raise ValueError("num_predictive must be >= 1")
        if self.sampler is None:
            self.sampler = SamplerSettings()
        elif isinstance(self.sampler, Mapping):
            self.sampler = SamplerSettings.from_mapping(self.sampler)

"""The three worked examples with their hyperparameters and data.

- ``normal_normal``: heights (cm) with known sd 10, prior N(170, 20^2) on the mean.
- ``beta_binomial``: 7 successes in 10 trials, weakly informative Beta(2, 2) prior.
- ``poisson_gamma``: daily event counts, Gamma(shape=2, rate=1) prior on the rate.
"""
from .ppl.description import ModelDescription, PriorSpec, LikelihoodSpec

__all__ = ["EXAMPLES", "get_example"]


def normal_normal() -> ModelDescription:
    return ModelDescription(
        prior=PriorSpec("normal", {"mu": 170.0, "sigma": 20.0}),
        likelihood=LikelihoodSpec("normal", {"sigma": 10.0}),
        data=[172.1, 168.4, 181.0, 175.3, 169.9, 177.6, 171.2, 183.4, 174.8, 166.5],
        parameter_name="mu",
    )


def beta_binomial() -> ModelDescription:
    return ModelDescription(
        prior=PriorSpec("beta", {"alpha": 2.0, "beta": 2.0}),
        likelihood=LikelihoodSpec("binomial", {"n_trials": 10}),
        data=[7],
        parameter_name="p",
    )


def poisson_gamma() -> ModelDescription:
    return ModelDescription(
        prior=PriorSpec("gamma", {"shape": 2.0, "rate": 1.0}),
        likelihood=LikelihoodSpec("poisson", {}),
        data=[3, 5, 2, 4, 6, 3, 4, 2, 5, 3],
        parameter_name="lambda",
    )


EXAMPLES = {
    "normal_normal": normal_normal,
    "beta_binomial": beta_binomial,
    "poisson_gamma": poisson_gamma,
}


def get_example(name: str) -> ModelDescription:
    """Returns a fresh copy of a named example.

    Raises:
        KeyError: If ``name`` is not one of :data:`EXAMPLES`.
    """
    try:
        return EXAMPLES[name]()
    except KeyError:
        raise KeyError(f"Unknown example '{name}'. Choose from {sorted(EXAMPLES)}.") from None

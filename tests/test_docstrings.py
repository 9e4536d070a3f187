import inspect

import pytest

from conjpipe import plots
from conjpipe.core.distributions import Distribution, EmpiricalDistribution
from conjpipe.core.univariate import Univariate, Normal1D, Beta, GaussianKDE


PUBLIC_API = [
    Distribution.sample,
    Distribution.density,
    Distribution.from_distribution,
    EmpiricalDistribution.var,
    EmpiricalDistribution.quantile,
    EmpiricalDistribution.sample,
    EmpiricalDistribution.expectation,
    EmpiricalDistribution.from_distribution,
    Univariate.sample,
    Univariate.density,
    Univariate.log_density,
    Univariate.cdf,
    Univariate.inv_cdf,
    Univariate.var,
    Univariate.expectation,
    Normal1D.from_distribution,
    Beta.from_distribution,
    GaussianKDE.sample,
    GaussianKDE.cdf,
    GaussianKDE.from_distribution,
    plots.plot_posterior,
    plots.plot_predictive,
    plots.plot_trace,
]


@pytest.mark.parametrize("func", PUBLIC_API, ids=lambda f: f.__qualname__)
def test_public_api_documents_returns(func):
    doc = inspect.getdoc(func)
    assert doc is not None
    assert "Returns:" in doc


@pytest.mark.parametrize("func", [f for f in PUBLIC_API if f.__name__ not in ("var",)],
                         ids=lambda f: f.__qualname__)
def test_public_api_documents_args(func):
    assert "Args:" in inspect.getdoc(func)

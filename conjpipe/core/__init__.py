# distributions must be imported before univariate (mutual import)
from .distributions import Distribution, EmpiricalDistribution
from .univariate import (
    Univariate,
    Normal1D,
    Beta,
    Gamma,
    Binomial,
    Poisson,
    BetaBinomial,
    NegativeBinomial,
    GaussianKDE,
)
from .module import Module, InputSpec
from .conjugate import ConjugateModel, NormalNormal, BetaBinomialModel, PoissonGamma
from .summaries import CredibleInterval, PointEstimates, credible_interval, point_estimates
from .mcmc import (
    Chain,
    MCMCTrace,
    Likelihood,
    MetropolisHastings,
    MCMC,
    DistributionModule,
    gelman_rubin,
    effective_sample_size,
)

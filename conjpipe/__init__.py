__version__ = "0.1.0"

from conjpipe.core import (
    Distribution,
    EmpiricalDistribution,
    Normal1D,
    Beta,
    Gamma,
    Binomial,
    Poisson,
    BetaBinomial,
    NegativeBinomial,
    GaussianKDE,
    Module,
    InputSpec,
    NormalNormal,
    BetaBinomialModel,
    PoissonGamma,
    CredibleInterval,
    PointEstimates,
    credible_interval,
    point_estimates,
    Likelihood,
    MetropolisHastings,
    MCMC,
    MCMCTrace,
    DistributionModule,
    gelman_rubin,
    effective_sample_size,
)
from conjpipe.config import SamplerSettings, AnalysisSettings
from conjpipe.ppl import (
    ModelDescription,
    PriorSpec,
    LikelihoodSpec,
    UnsupportedModelError,
    compile_model,
    sample,
    sample_posterior_predictive,
)
from conjpipe.presets import EXAMPLES, get_example
from conjpipe.analysis import run_analysis, AnalysisReport

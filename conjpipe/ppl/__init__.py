from .description import (
    UnsupportedModelError,
    PriorSpec,
    LikelihoodSpec,
    ModelDescription,
    CompiledModel,
    compile_model,
    PRIOR_FAMILIES,
    LIKELIHOOD_FAMILIES,
)
from .sampling import BACKENDS, build_mcmc, sample, sample_posterior_predictive

"""
Example: Normal-Normal conjugate model
--------------------------------------

Model:
    y_i | mu ~ Normal(mu, 10^2)      (known sd)
    mu       ~ Normal(170, 20^2)

Part 1 uses the closed-form update and plain sampling calls.
Part 2 writes the same model as a description and samples it with MCMC.
"""

import matplotlib.pyplot as plt
import numpy as np

from conjpipe import (
    NormalNormal, credible_interval, point_estimates,
    compile_model, sample, sample_posterior_predictive, SamplerSettings, get_example,
)
from conjpipe.plots import plot_posterior, plot_predictive, plot_trace


description = get_example("normal_normal")
data = np.asarray(description.data)

# Part 1: closed form
model = NormalNormal(mu0=170.0, tau0=20.0, sigma=10.0, seed=0)
posterior = model.update_posterior(data=data)
print("Posterior:", posterior)
print(credible_interval(posterior, 0.95))
print("Point estimates:", point_estimates(posterior))

draws = model.sample_posterior(data=data, num_samples=10_000)
print("Sampled 95% interval:", credible_interval(draws, 0.95))

predictive = model.posterior_predictive(data=data)
pred_draws = model.sample_posterior_predictive(data=data, num_samples=10_000)
print("Posterior predictive:", predictive)

# Part 2: model description + MCMC
compiled = compile_model(description)
trace = sample(compiled, settings=SamplerSettings(num_samples=4000, burn_in=1000, num_chains=4, seed=1))
mcmc_posterior = trace.to_distribution()
print("MCMC", credible_interval(mcmc_posterior, 0.95))
print("MCMC point estimates:", point_estimates(mcmc_posterior))
print(f"R-hat={trace.r_hat():.4f}, ESS={trace.ess():.0f}")
mcmc_pred = sample_posterior_predictive(compiled, trace, 10_000, seed=2)

fig, axes = plt.subplots(2, 2, figsize=(11, 8))
plot_posterior(draws, posterior, credible_interval(posterior), ax=axes[0, 0], label="mu")
plot_posterior(mcmc_posterior, posterior, credible_interval(mcmc_posterior), ax=axes[0, 1], label="mu")
plot_predictive(pred_draws, predictive, data=data, ax=axes[1, 0])
plot_trace(trace, ax=axes[1, 1])
fig.tight_layout()
plt.show()

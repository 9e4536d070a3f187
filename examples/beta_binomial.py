"""
Example: Beta-Binomial conjugate model
--------------------------------------

Model:
    k | p ~ Binomial(10, p)
    p     ~ Beta(2, 2)

We observe k = 7 successes and compare the closed-form Beta posterior
with Metropolis-Hastings draws from the same model description.
"""

import matplotlib.pyplot as plt

from conjpipe import BetaBinomialModel, credible_interval, point_estimates, run_analysis, AnalysisSettings, get_example
from conjpipe.plots import plot_posterior, plot_predictive


model = BetaBinomialModel(alpha=2.0, beta=2.0, n_trials=10, seed=0)
posterior = model.update_posterior(data=[7])
print("Posterior:", posterior)                                   # Beta(9, 5)
print(credible_interval(posterior, 0.95))
print(credible_interval(posterior, 0.95, method="hpd"))
print("Point estimates:", point_estimates(posterior))
print("Predictive for 10 new trials:", model.posterior_predictive(data=[7]))

settings = AnalysisSettings(level=0.95, sampler={"num_samples": 4000, "num_chains": 4, "seed": 3})
report = run_analysis(get_example("beta_binomial"), settings)
print(report.summary())

fig, axes = plt.subplots(1, 2, figsize=(11, 4))
plot_posterior(report.sampled.posterior, posterior, report.sampled.interval, ax=axes[0], label="p")
plot_predictive(report.sampled.predictive, report.analytic.predictive, data=[7], ax=axes[1])
fig.tight_layout()
plt.show()

"""
Example: Poisson-Gamma conjugate model
--------------------------------------

Model:
    y_i | lambda ~ Poisson(lambda)
    lambda       ~ Gamma(shape=2, rate=1)

Runs the closed form and both MCMC engines. The PyMC engine needs the
``ppl`` extra (``pip install conjpipe[ppl]``).
"""

import matplotlib.pyplot as plt

from conjpipe import run_analysis, AnalysisSettings, get_example
from conjpipe.plots import plot_posterior, plot_predictive, plot_trace


description = get_example("poisson_gamma")

for backend in ("metropolis", "pymc"):
    settings = AnalysisSettings(backend=backend, sampler={"num_samples": 2000, "num_chains": 4, "seed": 4})
    report = run_analysis(description, settings)
    print(f"== {backend} ==")
    print(report.summary())

fig, axes = plt.subplots(1, 3, figsize=(15, 4))
plot_posterior(report.sampled.posterior, report.analytic.posterior, report.analytic.interval, ax=axes[0], label="lambda")
plot_predictive(report.sampled.predictive, report.analytic.predictive, data=description.data, ax=axes[1])
plot_trace(report.trace, ax=axes[2])
fig.tight_layout()
plt.show()

"""
poisson_gmc — Test Suite
========================

Test modules:
- test_binning.py: grid construction and per-bin counts
- test_prior.py: conjugate full conditionals, alpha ratio, empirical Bayes
- test_sampler.py: configuration, chain state, per-iteration cycle
- test_summary.py: burn-in, credible bands, summary file
- test_inference.py: end-to-end runs, recovery and coverage
- test_datasets.py: example data and Poisson-process simulation
- test_diagnostics.py: R-hat / ESS across chains (needs arviz)
"""

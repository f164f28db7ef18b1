"""Core value objects and configuration for the NFL Monte Carlo simulator.

This package contains pure building blocks shared by every scoring engine:

- ``errors``       — the exception taxonomy surfaced to callers
- ``model_config`` — calibration presets (weights, logits, variance bounds)
- ``baseline``     — league (mean, sd) snapshots and z-score standardisation
- ``sim_interface``— DTOs and the ABC for swappable scoring engines
- ``odds_math``    — probability ↔ American odds conversion

Nothing in this package imports from ``nflsim.services``.
All modules are side-effect-free and unit-testable in isolation.
"""

"""
cretycoon - Commercial Real Estate Portfolio Simulator

Multi-year portfolio simulation with stochastic markets, debt maturities,
lease rollover and a one-shot deal underwriting calculator.

Modules:
    - core: RNG, financial primitives, settings, logging and exceptions
    - domain: Pydantic data models and pure calculators (market, lifecycle,
      portfolio, underwriting)
    - application: Run orchestration, player commands, reference data and
      persistence services
"""

__version__ = "1.4.0"

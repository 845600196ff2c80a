"""Calculator facade.

Modules:
    - calculator: FireCalculator, one configured scenario.
"""

"""Dependency graph engine.

Modules:
    - variable: Variable with native/display values and a raw text store.
    - function: Function nodes and the Formula compute interface.
    - dependency_graph: Variable/function arenas, configuration and lazy evaluation.
    - range_table: Scalar, vector and matrix runs over ranging variables.
"""

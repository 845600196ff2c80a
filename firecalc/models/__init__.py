"""Fire behavior models and the calculator catalog.

Modules:
    - fuel_models: Anderson 13 fuel model definitions.
    - rothermel: Rothermel (1972) surface fire spread model.
    - fire_behavior: Fire size, containment, crown initiation, scorch, safety
      zone, spotting, ignition, wind and weather equations.
    - catalog: Variable and function definitions and graph construction.
    - configure: Module configuration from properties.
    - conflicts: Configuration conflicts and their resolutions.
    - masking: Advisory masking of entries made unnecessary by other entries.
"""

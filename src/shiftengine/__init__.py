"""Demand-driven shift scheduling engine.

Turns time-bucketed staffing demand into concrete shift assignments,
respecting employee skills, availability, constraints and labor rules.
"""

__version__ = "0.1.0"

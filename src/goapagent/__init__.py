"""Goal-oriented action planning with a step-wise execution loop."""

__version__ = "0.1.0"

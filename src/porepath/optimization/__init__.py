"""
Generic optimization routines.
"""

from .annealing import SimulatedAnnealing, AnnealingResult, OptimizationStatus, anneal

__all__ = [
    "SimulatedAnnealing",
    "AnnealingResult",
    "OptimizationStatus",
    "anneal",
]

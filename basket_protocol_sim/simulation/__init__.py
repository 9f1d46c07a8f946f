"""Block-by-block simulation of a basket protocol"""

from .engine import BasketSimulationEngine

__all__ = ["BasketSimulationEngine"]

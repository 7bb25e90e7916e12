"""Service modules"""
from .engine import PositionEngine
from .health import HealthFactorCalculator
from .simulation import Simulation, StepResult, build_engine, run_scenario

__all__ = [
    "HealthFactorCalculator",
    "PositionEngine",
    "Simulation",
    "StepResult",
    "build_engine",
    "run_scenario",
]

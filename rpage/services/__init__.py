from .retention import run_retention_sweep, sweep_on_startup

__all__ = [
    "run_retention_sweep",
    "sweep_on_startup",
]

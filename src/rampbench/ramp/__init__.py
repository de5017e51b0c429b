from __future__ import annotations

from rampbench.ramp.schedule import RampSchedule

__all__ = ["RampSchedule"]

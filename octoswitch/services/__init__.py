"""
Service Organization
====================
Services are organized by their lifecycle:

**scheduling/**
  The schedule engine: slot merger, conflict detector, resolver and the
  per-minute executor. Resolver and merger helpers are stateless; the
  executor holds only its tick guard and worker pool.

**container.py**
  ServiceContainer wiring the engine to its collaborators and the
  background scheduler. One instance per process.
"""

from .scheduling import ScheduleExecutor, ScheduleResolver

__all__ = [
    "ScheduleExecutor",
    "ScheduleResolver",
]

"""
OctoSwitch
==========

Schedule resolution and execution engine for remote-controlled devices.
"""

__version__ = "1.0.0"

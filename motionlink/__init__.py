"""Stepper motion control, coordinated multi-stepper moves and iBus receiver handling."""

__version__ = "0.1.0"
__all__ = ["hal", "drive", "stepper", "multi_stepper", "ibus"]
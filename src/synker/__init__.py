"""Personal task, time capsule and streak tracker."""

__version__ = "0.1.0"

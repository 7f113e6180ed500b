"""SprintPulse: a 12-week-year execution tracker."""

__version__ = "0.1.0"

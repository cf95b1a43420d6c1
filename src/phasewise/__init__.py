"""phasewise: phased training scheduler and workout session tracker."""

__version__ = "0.1.0"

"""Weigh Station Console: truck weighbridge with plate recognition and ticketing."""

__version__ = "1.0.0"

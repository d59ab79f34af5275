"""Sunclock relay — phone-side location service for the Twilight Sunclock watchface."""

__version__ = "2.1.0"

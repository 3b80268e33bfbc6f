"""Animated maps of NASA FIRMS fire brightness temperature."""

__version__ = "0.1.0"

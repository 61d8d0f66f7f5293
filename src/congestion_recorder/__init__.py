"""Records tram stop dwell observations from the HSL realtime positioning feed."""

__version__ = "0.1.0"

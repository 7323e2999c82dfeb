"""NusaScan: cultural report analysis for photographs of Indonesian artifacts."""

__version__ = "1.0.0"

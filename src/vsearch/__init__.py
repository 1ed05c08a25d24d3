"""vsearch — timestamped search over a local training-video library."""

__version__ = "0.1.0"

"""cinescore - hierarchical weighted scoring for movie and TV reviews."""

__version__ = "0.3.0"

"""predbets - binary prediction market settlement."""

__version__ = "0.1.0"

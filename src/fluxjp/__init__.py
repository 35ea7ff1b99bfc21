"""FluxJP - spaced repetition for Japanese vocabulary."""

__version__ = "0.1.0"

"""Product feed conversion and content-addressed image mirroring."""

__version__ = "0.1.0"

"""Deportation registry import pipeline.

decode -> validate -> detect conflicts -> execute, against an injected record store.
"""

__version__ = "0.1.0"

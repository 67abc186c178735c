"""
spreadmaker - simulated single-pair market-making engine.
"""

__version__ = "0.3.0"

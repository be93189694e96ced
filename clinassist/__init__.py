"""
Clinical Decision Assistant

Multi-backend clinical analysis with a deterministic scoring and treatment
engine as the guaranteed fallback.
"""
__version__ = "1.0.0"

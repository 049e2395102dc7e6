# relive_search/__init__.py
"""Hybrid full-text and structured search over conversations, commitments, insights and transcripts."""
__version__ = "1.0.0"

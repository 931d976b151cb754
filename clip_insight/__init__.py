"""
Clip Insight: content understanding for clipboard history.
"""

__version__ = "0.1.0"

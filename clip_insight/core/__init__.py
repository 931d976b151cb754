"""
Core modules for Clip Insight.

This package contains the local classifier, the request governor
(rate limiting and usage accounting), the prompt library and the
pure parts of remote classification and grouping.
"""

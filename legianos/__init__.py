"""
LegianOS goal service.
Free-text goal intake -> classification -> extraction -> creation -> export.
"""

__version__ = "1.0.0"

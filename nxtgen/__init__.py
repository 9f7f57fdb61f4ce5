"""
NXTGEN College Guide
College discovery, admission prediction and community features.
"""

__version__ = "1.3.0"

"""
Runtime will load the LTI Platform app from here.
"""

__version__ = '1.0.0'

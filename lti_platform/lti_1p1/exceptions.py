"""
Exceptions for the LTI 1.0/1.1 Platform.
"""


class Lti1p1Error(Exception):
    """
    General error class for LTI 1.0/1.1 message signing and verification.
    """

"""
Exceptions for the LTI Platform.
"""


class LtiError(Exception):
    """
    General error class for LTI Platform usage.
    """


class ToolNotFound(LtiError):
    """
    No tool is registered with the requested id or code.
    """


class DuplicateToolCode(LtiError):
    """
    Raised when saving a tool whose code is already used by another tool in the same scope.
    """


class ToolSaveError(LtiError):
    """
    The persistence layer refused to store a tool.
    """

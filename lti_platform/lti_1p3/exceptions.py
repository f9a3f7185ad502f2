"""
Exceptions raised while talking to LTI 1.3 tools.
"""


class Lti1p3Exception(Exception):
    """
    Base class of the LTI 1.3 errors; subclasses carry a default message.
    """
    message = None

    def __init__(self, message=None):
        super().__init__(message or self.message)


class OidcError(Lti1p3Exception):
    """
    An authentication request that must be answered with an OpenID Connect error code.
    """
    error = None


class AccessDenied(OidcError):
    error = 'access_denied'
    message = "The authentication request does not match the login that was initiated."


class InvalidRequest(OidcError):
    error = 'invalid_request'
    message = "The authentication request is missing a required parameter."


class UnsupportedResponseType(OidcError):
    error = 'unsupported_response_type'
    message = "Only the id_token response type is supported."


class InvalidRedirectUri(AccessDenied):
    message = "The redirect URI is not registered for this tool."


class NoSuitableKeys(Lti1p3Exception):
    message = "None of the tool's keys could be loaded."


class InvalidClaimValue(Lti1p3Exception):
    message = "The claim has an invalid value."


class InvalidRsaKey(Lti1p3Exception):
    message = "The RSA key could not be parsed."


class RsaKeyNotSet(Lti1p3Exception):
    message = "The platform has no RSA key."

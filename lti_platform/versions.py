"""
Resolution of the LTI version and signature method a tool operates with.

A tool configured with an initiate login URL and at least one redirection URI is an LTI 1.3
tool signing with RS256; any other tool is an LTI 1.0/1.1/1.2 tool signing with HMAC-SHA1.
"""
from enum import Enum

SIGNATURE_HMAC_SHA1 = 'HMAC-SHA1'
SIGNATURE_RS256 = 'RS256'


class LtiVersion(Enum):
    """ LTI versions supported by the platform """
    V1_0 = 'LTI-1p0'
    V1_3 = '1.3.0'


def resolve_version(tool):
    """
    Return the (version, signature method) pair configured for a tool.
    """
    if not tool.initiate_login_url or not tool.redirection_uris:
        return LtiVersion.V1_0, SIGNATURE_HMAC_SHA1
    return LtiVersion.V1_3, SIGNATURE_RS256


def can_use_lti13(tool, platform_settings):
    """
    Return whether LTI 1.3 messages can be exchanged with a tool: it must be configured for
    LTI 1.3 and the platform must have a key ID and private key.
    """
    return bool(
        tool.initiate_login_url and tool.redirection_uris and
        platform_settings.kid and platform_settings.private_key
    )


def can_be_enabled(tool, platform_settings):
    """
    Return whether a tool is configured well enough to be launched.
    """
    return bool(tool.message_url) and (
        bool(tool.key and tool.secret) or can_use_lti13(tool, platform_settings)
    )


def select_message_version(tool, platform_settings):
    """
    Return the LTI version used for messages sent to a tool.
    """
    if can_use_lti13(tool, platform_settings):
        return LtiVersion.V1_3
    return LtiVersion.V1_0

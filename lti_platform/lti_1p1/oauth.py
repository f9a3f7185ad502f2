"""
Utility functions for working with OAuth signatures.
"""

import logging
import urllib.parse

from oauthlib import oauth1

from .exceptions import Lti1p1Error

log = logging.getLogger(__name__)


class SignedRequest:
    """
    Encapsulates request attributes needed when working
    with the `oauthlib.oauth1` API
    """
    def __init__(self, **kwargs):
        self.uri = kwargs.get('uri')
        self.http_method = kwargs.get('http_method')
        self.params = kwargs.get('params')
        self.signature = kwargs.get('signature')


def get_oauth_request_signature(key, secret, url, headers, body):
    """
    Returns Authorization header for a signed oauth request.

    Arguments:
        key (str): OAuth consumer key of the tool
        secret (str): Shared secret of the tool
        url (str): URL for the signed request
        headers (dict): HTTP headers for the signed request
        body (dict): Form parameters of the signed request

    Returns:
        str: Authorization header for the OAuth signed request
    """
    client = oauth1.Client(client_key=str(key), client_secret=str(secret))
    try:
        _, headers, _ = client.sign(
            str(url.strip()),
            http_method='POST',
            body=body,
            headers=headers
        )
    except ValueError as err:  # Scheme not in url.
        raise Lti1p1Error("Failed to sign oauth request") from err

    return headers['Authorization']


def parse_authorization_header(header):
    """
    Split an OAuth Authorization header into form parameters.

    oauthlib encodes the values for a header, so '=' becomes '%3D'. The form is
    encoded again by the browser, so values are decoded here.
    """
    params = {}
    for param in header[len('OAuth '):].split(','):
        name, _, value = param.strip().partition('=')
        params[name] = urllib.parse.unquote(value.strip('"'))
    return params


def verify_oauth_form_signature(uri, http_method, params, secret):
    """
    Verify the HMAC-SHA1 signature of a form POST signed by a tool.

    Arguments:
        uri (str): URL the request was made to
        http_method (str): HTTP method of the request
        params (list): (name, value) pairs of the query string and form body, including `oauth_signature`
        secret (str): Shared secret of the tool

    Raises:
        Lti1p1Error if the signature is missing or incorrect.
    """
    signature = None
    signed_params = []
    for name, value in params:
        if name == 'oauth_signature':
            signature = value
        else:
            signed_params.append((name, value))

    if not signature:
        raise Lti1p1Error("OAuth signature is missing.")

    signed_request = SignedRequest(
        uri=str(urllib.parse.unquote(uri)),
        http_method=str(http_method),
        params=signed_params,
        signature=signature,
    )
    if not oauth1.rfc5849.signature.verify_hmac_sha1(signed_request, secret):
        log.warning(
            "OAuth signature verification failed, for url:%s method:%s",
            uri,
            http_method,
        )
        raise Lti1p1Error("OAuth signature verification has failed.")

    return True

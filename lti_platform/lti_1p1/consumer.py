"""
This module encapsulates code which implements the LTI 1.0/1.1 specification
on the platform side: signing outgoing messages and verifying returned ones.

For more details see:
https://www.imsglobal.org/activity/learning-tools-interoperability
"""

import logging
import time

from django.core.cache import cache

from .constants import LTI_1P1_LAUNCH_MESSAGE_TYPE, LTI_1P1_VERSION, OAUTH_TIMESTAMP_TOLERANCE
from .exceptions import Lti1p1Error
from .oauth import get_oauth_request_signature, parse_authorization_header, verify_oauth_form_signature

log = logging.getLogger(__name__)

NONCE_CACHE_PREFIX = 'lti_platform.lti_1p1.nonce'


class LtiConsumer1p1:
    """
    LTI 1.0/1.1 message signer for one tool.
    """
    def __init__(self, lti_launch_url, oauth_key, oauth_secret):
        """
        Arguments:
            lti_launch_url (string):  URL the message is sent to
            oauth_key (string):  OAuth consumer key
            oauth_secret (string):  OAuth consumer secret
        """
        self.lti_launch_url = lti_launch_url
        self.oauth_key = oauth_key
        self.oauth_secret = oauth_secret

    def generate_launch_request(self, params, message_type=LTI_1P1_LAUNCH_MESSAGE_TYPE):
        """
        Signs an LTI message and returns the form parameters to post to the tool.

        Arguments:
            params (dict):  Message parameters
            message_type (string):  `basic-lti-launch-request` or `ContentItemSelectionRequest`

        Returns:
            dict: LTI message and OAuth parameters
        """
        lti_parameters = {
            'lti_message_type': message_type,
            'lti_version': LTI_1P1_VERSION,
        }
        lti_parameters.update(params)
        # Must have parameters for correct signing from LTI:
        lti_parameters['oauth_callback'] = 'about:blank'

        headers = {
            # This is needed for body encoding:
            'Content-Type': 'application/x-www-form-urlencoded',
        }

        oauth_signature = get_oauth_request_signature(
            self.oauth_key,
            self.oauth_secret,
            self.lti_launch_url,
            headers,
            lti_parameters
        )

        # Add LTI parameters to OAuth parameters for sending in form.
        lti_parameters.update(parse_authorization_header(oauth_signature))
        return lti_parameters

    def verify_message(self, uri, http_method, params, now=None):
        """
        Verify an OAuth signed message returned by the tool, such as a content-item selection.

        Arguments:
            uri (str): URL the message was posted to
            http_method (str): HTTP method of the request
            params (list): (name, value) pairs of the query string and form body
            now (int): Current time, in seconds since the epoch

        Raises:
            Lti1p1Error if the message cannot be trusted.
        """
        oauth_params = dict(params)

        if oauth_params.get('oauth_consumer_key') != self.oauth_key:
            raise Lti1p1Error("Invalid consumer key.")

        if oauth_params.get('oauth_signature_method') != 'HMAC-SHA1':
            raise Lti1p1Error("Unsupported signature method.")

        now = int(time.time()) if now is None else now
        try:
            timestamp = int(oauth_params.get('oauth_timestamp', ''))
        except ValueError as err:
            raise Lti1p1Error("Invalid OAuth timestamp.") from err
        if abs(now - timestamp) > OAUTH_TIMESTAMP_TOLERANCE:
            raise Lti1p1Error("OAuth timestamp is outside the allowed window.")

        nonce = oauth_params.get('oauth_nonce')
        if not nonce:
            raise Lti1p1Error("OAuth nonce is missing.")

        verify_oauth_form_signature(uri, http_method, params, self.oauth_secret)

        # Only record the nonce once the signature is known to be good.
        nonce_key = f'{NONCE_CACHE_PREFIX}.{self.oauth_key}.{nonce}'
        if not cache.add(nonce_key, timestamp, OAUTH_TIMESTAMP_TOLERANCE * 2):
            log.warning("Rejecting replayed OAuth nonce %s for consumer key %s", nonce, self.oauth_key)
            raise Lti1p1Error("OAuth nonce has already been used.")

        return True

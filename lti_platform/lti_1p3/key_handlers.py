"""
LTI 1.3 - Key handlers

The platform signs the messages it sends with its own RSA key and publishes the public
half as a JWKS. Messages returned by a tool, such as deep linking responses, are checked
against the tool's keyset URL or the public key registered for it.
"""
import copy
import json
import logging
import math
import time

import jwt
from edx_django_utils.monitoring import function_trace
from jwt.algorithms import RSAAlgorithm
from jwt.api_jwk import PyJWK

from . import exceptions

log = logging.getLogger(__name__)

SIGNING_ALGORITHM = 'RS256'
ACCEPTED_TOOL_ALGORITHMS = ['RS256', 'RS512']


def _load_jwk(key_pem, kid=None):
    """
    Load a PEM encoded RSA key (public or private) as a PyJWK.

    Raises:
        InvalidRsaKey if the key cannot be parsed.
    """
    algorithm = RSAAlgorithm(RSAAlgorithm.SHA256)
    try:
        jwk = json.loads(algorithm.to_jwk(algorithm.prepare_key(key_pem)))
    except (jwt.exceptions.InvalidKeyError, ValueError) as err:
        raise exceptions.InvalidRsaKey() from err
    if kid is not None:
        jwk['kid'] = kid
    return PyJWK.from_dict(jwk)


class ToolKeyHandler:
    """
    Validates the JWTs sent by one tool.

    The keyset URL is only fetched when a token is validated, so building the handler
    never waits on the tool.
    """
    @function_trace('lti_platform.key_handlers.ToolKeyHandler.__init__')
    def __init__(self, public_key=None, keyset_url=None):
        """
        Arguments:
            public_key (str): Public key of the tool, in PEM format
            keyset_url (str): JWKS URL of the tool, tried before the public key
        """
        self.keyset_url = keyset_url
        self.public_key = None

        if public_key:
            try:
                self.public_key = _load_jwk(public_key)
            except exceptions.InvalidRsaKey:
                log.warning("The public key registered for the LTI tool could not be parsed.")
                raise

    def _candidate_keys(self):
        """
        Return the keys a token may be signed with: those of the keyset URL, then the public key.
        """
        candidates = []

        if self.keyset_url:
            try:
                candidates.extend(jwt.PyJWKClient(self.keyset_url).get_jwk_set().keys)
            except jwt.exceptions.PyJWKClientError as err:
                log.warning("Unable to load the LTI tool's keys from %s: %s", self.keyset_url, err)
                if not self.public_key:
                    raise exceptions.NoSuitableKeys() from err

        if self.public_key:
            candidates.append(self.public_key)

        return candidates

    def validate_and_decode(self, token, aud=None):
        """
        Check the signature and expiry of a token sent by the tool and return its claims.

        The audience is only checked when `aud` is given. When no key matches, the error raised
        for the last key tried is propagated.
        """
        candidates = self._candidate_keys()
        if not candidates:
            raise exceptions.NoSuitableKeys()

        last_error = None
        for candidate in candidates:
            key = candidate.key.public_key() if hasattr(candidate.key, 'public_key') else candidate.key
            try:
                return jwt.decode(
                    token,
                    key,
                    audience=aud,
                    algorithms=ACCEPTED_TOOL_ALGORITHMS,
                    options={'verify_aud': bool(aud)},
                )
            except jwt.exceptions.InvalidTokenError as err:
                last_error = err
        raise last_error


class PlatformKeyHandler:
    """
    Holds the platform's private key: signs outgoing JWTs and exports the public JWKS.
    """
    @function_trace('lti_platform.key_handlers.PlatformKeyHandler.__init__')
    def __init__(self, key_pem, kid=None):
        """
        Arguments:
            key_pem (str): Private key of the platform, in PEM format; may be empty
            kid (str): Key ID sent in the header of signed tokens
        """
        self.key = None

        if key_pem:
            try:
                self.key = _load_jwk(key_pem, kid)
            except exceptions.InvalidRsaKey:
                log.warning("The LTI platform's private key could not be parsed.")
                raise

    def encode_and_sign(self, message, expiration=None):
        """
        Sign a message with the platform key.

        Arguments:
            message (dict): Claims to sign
            expiration (int): Lifetime in seconds; sets the `iat` and `exp` claims when given
        """
        if not self.key:
            log.warning("Unable to sign an LTI 1.3 message: the platform has no private key.")
            raise exceptions.RsaKeyNotSet()

        claims = copy.deepcopy(message)
        if expiration:
            issued_at = int(math.floor(time.time()))
            claims['iat'] = issued_at
            claims['exp'] = issued_at + expiration

        return jwt.encode(claims, self.key.key, algorithm=SIGNING_ALGORITHM, headers={'kid': self.key.key_id})

    def get_public_jwk(self):
        """
        Return the JWKS holding the public half of the platform key; empty when no key is set.
        """
        keyset = {'keys': []}
        if not self.key:
            return keyset

        algorithm = RSAAlgorithm(RSAAlgorithm.SHA256)
        public_jwk = json.loads(algorithm.to_jwk(self.key.key.public_key()))
        public_jwk.update({
            'kid': self.key.key_id,
            'alg': SIGNING_ALGORITHM,
            'use': 'sig',
        })
        keyset['keys'].append(public_jwk)
        return keyset

"""
LTI 1.3 Platform implementation

Drives the OpenID Connect third party initiated login, answers the tool's
authentication request with a signed id_token, and decodes deep linking
responses returned by the tool.
"""
import logging
from urllib.parse import urlencode

from . import constants, exceptions
from .key_handlers import PlatformKeyHandler, ToolKeyHandler

log = logging.getLogger(__name__)

REQUIRED_AUTH_PARAMETERS = ('response_type', 'scope', 'client_id', 'redirect_uri', 'login_hint', 'nonce')


def redirect_uri_allowed(redirect_uri, redirection_uris):
    """
    Return whether a redirect URI is registered: it must equal one of the registered URIs,
    or start with a registered URI ending with `*` (without the asterisk).
    """
    for uri in redirection_uris:
        if uri.endswith('*'):
            if redirect_uri.startswith(uri[:-1]):
                return True
        elif redirect_uri == uri:
            return True
    return False


def _split_list(value):
    items = []
    for item in str(value).split(','):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items


def _to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


class LtiPlatform1p3:
    """
    LTI 1.3 Platform Implementation, for messages exchanged with one tool.
    """
    def __init__(
            self,
            iss,
            lti_oidc_url,
            client_id,
            deployment_id,
            rsa_key,
            rsa_key_id,
            redirection_uris=None,
            tool_key=None,
            tool_keyset_url=None,
    ):
        """
        Initialize LTI 1.3 Platform class

        Arguments:
            iss (str): Issuer, the URL of this site
            lti_oidc_url (str): Initiate login URL of the tool
            client_id (str): Code of the tool
            deployment_id (str): Id of the current site
            rsa_key (str): Private key of the platform, in PEM format
            rsa_key_id (str): Key id of the platform's key
            redirection_uris (list): Redirection URIs registered for the tool
            tool_key (str): Public key of the tool, in PEM format
            tool_keyset_url (str): JWKS URL of the tool
        """
        self.iss = iss
        self.oidc_url = lti_oidc_url
        self.client_id = client_id
        self.deployment_id = deployment_id
        self.redirection_uris = list(redirection_uris or [])
        self.tool_key = tool_key
        self.tool_keyset_url = tool_keyset_url

        # Set up platform message signature class
        self.key_handler = PlatformKeyHandler(rsa_key, rsa_key_id)

    def prepare_preflight_url(self, target_link_uri, login_hint, lti_message_hint=None, storage_target=None):
        """
        Generates the tool's initiate login URL with the OIDC login parameters
        """
        parameters = {
            "iss": self.iss,
            "target_link_uri": target_link_uri,
            "login_hint": login_hint,
        }
        if lti_message_hint:
            parameters["lti_message_hint"] = lti_message_hint
        parameters.update({
            "client_id": self.client_id,
            "lti_deployment_id": self.deployment_id,
        })
        if storage_target:
            parameters["lti_storage_target"] = storage_target

        separator = '&' if '?' in self.oidc_url else '?'
        return self.oidc_url + separator + urlencode(parameters)

    def params_to_claims(self, params):
        """
        Convert LTI 1.0 style message parameters into LTI 1.3 claims.

        Reference: http://www.imsglobal.org/spec/lti/v1p3/#required-message-claims
        """
        message_type = params.get('lti_message_type', 'basic-lti-launch-request')
        claims = {
            constants.MESSAGE_TYPE_CLAIM: constants.MESSAGE_TYPE_MAP.get(message_type, message_type),
            constants.VERSION_CLAIM: constants.LTI_1P3_VERSION,
        }

        for name, value in params.items():
            if name in ('lti_message_type', 'lti_version'):
                continue
            if name == 'roles':
                claims[constants.ROLES_CLAIM] = _split_list(value)
            elif name.startswith('custom_'):
                claims.setdefault(constants.CUSTOM_CLAIM, {})[name[len('custom_'):]] = value
            elif name in constants.PARAMETER_CLAIM_MAP:
                claim, key = constants.PARAMETER_CLAIM_MAP[name]
                value = self._claim_value(name, key, value)
                if claim is None:
                    claims[key] = value
                else:
                    claims.setdefault(claim, {})[key] = value
            elif name.startswith('ext_'):
                claims.setdefault(constants.EXT_CLAIM, {})[name[len('ext_'):]] = value
            else:
                log.debug("Message parameter %s has no LTI 1.3 equivalent", name)

        # Required even when the user's roles are not shared
        claims.setdefault(constants.ROLES_CLAIM, [])

        settings = claims.get(constants.DEEP_LINKING_SETTINGS_CLAIM)
        if settings is not None:
            self._complete_deep_linking_settings(settings)

        return claims

    @staticmethod
    def _claim_value(name, key, value):
        """
        Convert a message parameter value to the JSON type of its claim.
        """
        if name == 'context_type':
            return [constants.CONTEXT_TYPE_MAP.get(item, item) for item in _split_list(value)]
        if key in ('width', 'height'):
            return _to_int(value)
        if key in constants.BOOLEAN_CLAIM_KEYS:
            return str(value).lower() == 'true'
        if key in constants.LIST_CLAIM_KEYS:
            return _split_list(value)
        return value

    @staticmethod
    def _complete_deep_linking_settings(settings):
        """
        Derive the content item types from the media types, and keep the targets LTI 1.3 knows about.
        """
        if 'accept_types' not in settings:
            accept_types = []
            for media_type in settings.get('accept_media_types', []):
                content_type = constants.MEDIA_TYPE_CONTENT_TYPES.get(media_type)
                if content_type and content_type not in accept_types:
                    accept_types.append(content_type)
            settings['accept_types'] = accept_types or ['ltiResourceLink']

        if 'accept_presentation_document_targets' in settings:
            settings['accept_presentation_document_targets'] = [
                target for target in settings['accept_presentation_document_targets']
                if target in constants.LTI_DEEP_LINKING_TARGETS
            ]

    def validate_authentication_request(self, request_params, login_state):
        """
        Validate the authentication request sent by the tool against the login that was initiated.

        Raises an `OidcError` subclass carrying the OIDC error code on failure.
        """
        missing = [name for name in REQUIRED_AUTH_PARAMETERS if not request_params.get(name)]
        if missing:
            log.info("LTI 1.3 authentication request is missing %s", ', '.join(missing))
            raise exceptions.InvalidRequest()

        if 'openid' not in request_params['scope'].split():
            raise exceptions.InvalidRequest("The scope must include openid.")

        if request_params.get('response_type') != 'id_token':
            raise exceptions.UnsupportedResponseType()

        if login_state is None:
            raise exceptions.AccessDenied("No login was initiated for this user.")

        if request_params.get('client_id') != self.client_id:
            raise exceptions.AccessDenied("The client_id does not match the tool.")

        if request_params.get('login_hint') != login_state.login_hint:
            raise exceptions.AccessDenied("The login_hint does not match the initiated login.")

        if login_state.lti_message_hint and request_params.get('lti_message_hint') != login_state.lti_message_hint:
            raise exceptions.AccessDenied("The lti_message_hint does not match the initiated login.")

        if not redirect_uri_allowed(request_params['redirect_uri'], self.redirection_uris):
            raise exceptions.InvalidRedirectUri()

    def generate_launch_request(self, request_params, login_state):
        """
        Build and sign the LTI message saved in the login state.

        Returns:
            dict: `state` and `id_token` to post to the tool's redirect URI
        """
        self.validate_authentication_request(request_params, login_state)

        lti_launch_message = self.params_to_claims(login_state.params)
        lti_launch_message.update({
            "iss": self.iss,
            "aud": self.client_id,
            "azp": self.client_id,
            # Nonce from OIDC authentication request
            "nonce": request_params.get("nonce"),
            constants.DEPLOYMENT_ID_CLAIM: self.deployment_id,
            constants.TARGET_LINK_URI_CLAIM: login_state.message_url,
        })

        return {
            "state": request_params.get("state", ""),
            "id_token": self.key_handler.encode_and_sign(
                message=lti_launch_message,
                expiration=constants.ID_TOKEN_EXPIRATION,
            )
        }

    def get_public_keyset(self):
        """
        Export Public JWK
        """
        return self.key_handler.get_public_jwk()

    def decode_deep_linking_response(self, token):
        """
        Check and decode a Deep Linking response, return the content items it carries.

        This either returns a content item list or raises an exception.
        """
        tool_jwt = ToolKeyHandler(public_key=self.tool_key, keyset_url=self.tool_keyset_url)
        deep_link_response = tool_jwt.validate_and_decode(token, aud=self.iss)

        if deep_link_response.get('iss', self.client_id) != self.client_id:
            raise exceptions.InvalidClaimValue("Token wasn't issued by the tool.")

        message_type = deep_link_response.get(constants.MESSAGE_TYPE_CLAIM)
        if message_type != constants.LTI_DEEP_LINKING_RESPONSE:
            raise exceptions.InvalidClaimValue("Token isn't a Deep Linking Response message.")

        deployment_id = deep_link_response.get(constants.DEPLOYMENT_ID_CLAIM)
        if deployment_id is not None and str(deployment_id) != str(self.deployment_id):
            raise exceptions.InvalidClaimValue("Token's deployment_id claim is not correct.")

        content_items = deep_link_response.get(constants.CONTENT_ITEMS_CLAIM, [])
        if not isinstance(content_items, list):
            raise exceptions.InvalidClaimValue("Token's content_items claim is not a list.")
        return content_items

"""
Handling of the content-item (deep linking) responses returned by tools.

A tool answers a deep linking request with the link the user selected. The message is
verified with the tool's credentials, then its single LTI link item is converted into the
attributes of an embedded link.
"""
import json
import logging

import jwt

from .data import LinkAttributes
from .lti_1p1.constants import LTI_1P1_CONTENT_ITEM_RESPONSE_MESSAGE_TYPE
from .lti_1p1.consumer import LtiConsumer1p1
from .lti_1p1.exceptions import Lti1p1Error
from .lti_1p3.consumer import LtiPlatform1p3
from .lti_1p3.exceptions import Lti1p3Exception
from .shortcodes import build_shortcode
from .utils import escape_custom_value, generate_link_id
from .versions import LtiVersion, select_message_version

log = logging.getLogger(__name__)

REASON_NO_ITEMS = 'No items returned'
REASON_TOO_MANY_ITEMS = 'More than one item has been returned'
REASON_WRONG_ITEM_TYPE = 'Item must be an LTI link or assignment'

LTI_1P1_LINK_TYPES = ('LtiLinkItem', 'LtiAssignmentItem')
LTI_1P3_LINK_TYPES = ('ltiResourceLink',)


class ContentItemError(Exception):
    """
    The content-item message returned by a tool could not be verified.
    """


def read_content_item_message(tool, params, uri, http_method, platform_settings):
    """
    Verify a deep linking response posted by a tool and return its content items.

    Arguments:
        tool (Tool): the tool the response is for
        params (list): (name, value) pairs of the query string and form body
        uri (str): URL the response was posted to
        http_method (str): HTTP method of the request
        platform_settings (PlatformSettings)

    Returns:
        The LTI 1.1 `content_items` JSON string, or the LTI 1.3 list of content items

    Raises:
        ContentItemError if the message is not trusted.
    """
    values = dict(params)

    if 'JWT' in values:
        if select_message_version(tool, platform_settings) != LtiVersion.V1_3:
            raise ContentItemError("Tool is not configured for LTI 1.3.")
        platform = LtiPlatform1p3(
            iss=platform_settings.site_url,
            lti_oidc_url=tool.initiate_login_url,
            client_id=tool.code,
            deployment_id=str(platform_settings.site_id),
            rsa_key=platform_settings.private_key,
            rsa_key_id=platform_settings.kid,
            redirection_uris=tool.redirection_uris,
            tool_key=tool.rsa_key or None,
            tool_keyset_url=tool.jku or None,
        )
        try:
            return platform.decode_deep_linking_response(values['JWT'])
        except (Lti1p3Exception, jwt.exceptions.InvalidTokenError) as err:
            log.warning("Deep linking response from tool %s rejected: %s", tool.code, err)
            raise ContentItemError(str(err)) from err

    if not tool.key or not tool.secret:
        raise ContentItemError("Tool has no LTI 1.0 credentials.")
    if values.get('lti_message_type') != LTI_1P1_CONTENT_ITEM_RESPONSE_MESSAGE_TYPE:
        raise ContentItemError("Message is not a content-item selection.")
    consumer = LtiConsumer1p1(uri, tool.key, tool.secret)
    try:
        consumer.verify_message(uri, http_method, params)
    except Lti1p1Error as err:
        log.warning("Content-item message from tool %s rejected: %s", tool.code, err)
        raise ContentItemError(str(err)) from err
    return values.get('content_items', '')


def _lti_1p1_items(payload):
    if isinstance(payload, dict):
        if '@graph' in payload:
            graph = payload['@graph']
            return graph if isinstance(graph, list) else [graph]
        return [payload] if payload else []
    if isinstance(payload, list):
        return payload
    return []


def _flatten_custom(custom):
    if isinstance(custom, dict):
        return ';'.join(f'{name}={escape_custom_value(value)}' for name, value in custom.items())
    return str(custom or '')


def _link_from_lti_1p1_item(item, link):
    link.title = item.get('title') or ''
    link.url = item.get('url') or ''
    placement = item.get('placementAdvice') or {}
    targets = str(placement.get('presentationDocumentTarget') or '')
    if targets:
        link.target = targets.split(',')[0].strip()
        link.width = str(placement.get('displayWidth') or '')
        link.height = str(placement.get('displayHeight') or '')
    link.custom = _flatten_custom(item.get('custom'))


def _link_from_lti_1p3_item(item, link):
    link.title = item.get('title') or ''
    link.url = item.get('url') or ''
    for target in ('iframe', 'window'):
        if isinstance(item.get(target), dict):
            link.target = target
            link.width = str(item[target].get('width') or '')
            link.height = str(item[target].get('height') or '')
            break
    link.custom = _flatten_custom(item.get('custom'))


def handle_content_item_response(content_items, tool_code=''):
    """
    Convert the content items returned by a tool into the attributes of a new link.

    Arguments:
        content_items: LTI 1.1 JSON-LD payload (as a string or decoded), or the LTI 1.3 list of content items
        tool_code (str): code of the tool that returned the items

    Returns:
        (LinkAttributes, None) for a single LTI link, or (None, reason) otherwise
    """
    lti_1p3 = isinstance(content_items, list) and all(
        isinstance(item, dict) and 'type' in item for item in content_items
    )
    if isinstance(content_items, str):
        try:
            content_items = json.loads(content_items) if content_items.strip() else None
        except ValueError:
            log.info("Content items are not valid JSON")
            content_items = None

    items = content_items if lti_1p3 else _lti_1p1_items(content_items)

    if not items:
        return None, REASON_NO_ITEMS
    if len(items) > 1:
        return None, REASON_TOO_MANY_ITEMS

    item = items[0]
    link = LinkAttributes(tool=tool_code, id=generate_link_id())
    if lti_1p3:
        if item.get('type') not in LTI_1P3_LINK_TYPES:
            return None, REASON_WRONG_ITEM_TYPE
        _link_from_lti_1p3_item(item, link)
    else:
        if not isinstance(item, dict) or item.get('@type') not in LTI_1P1_LINK_TYPES:
            return None, REASON_WRONG_ITEM_TYPE
        _link_from_lti_1p1_item(item, link)

    return link, None


def link_to_shortcode(link, text=''):
    """
    Return the shortcode embedding a link returned by a tool.
    """
    return build_shortcode(link, text or link.title or link.tool)

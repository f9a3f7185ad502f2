"""
Launch Message Builder.

Resolves an embedded link (or a deep linking request) into the tool, the URL and the
message parameters to send, in LTI 1.0 parameter form. Parameters for LTI 1.3 tools are
converted into claims when the message is signed.
"""
import logging
import re

import django
from attrs import define, field

from .api import find_tool
from .data import PRESENTATION_TARGETS, LaunchContext, LaunchUser, LinkAttributes
from .lti_1p1.constants import (
    LTI_1P1_CONTENT_ITEM_MESSAGE_TYPE,
    LTI_1P1_LAUNCH_MESSAGE_TYPE,
    LTI_1P1_ROLE_MAP,
)
from .lti_1p3.constants import LTI_1P3_CONTEXT_ROLE_MAP
from .plugin import compat
from .shortcodes import get_link_attributes
from .utils import _, get_platform_endpoint_url, parse_custom_parameters
from .versions import LtiVersion, select_message_version

log = logging.getLogger(__name__)

PRODUCT_FAMILY_CODE = 'Django'

# Targets which open the tool inside a frame or a sized window
SIZED_TARGETS = ('popup', 'iframe', 'embed')

# Failure reasons
MISSING_POST = _('Missing or invalid post attribute in link')
MISSING_LINK_ID = _('Missing id attribute in link')
MISSING_TOOL = _('Missing tool attribute in link')
NO_TOOL = _('No tool specified')
TOOL_NOT_FOUND = _('Tool not found')
TOOL_NOT_ENABLED = _('Tool is not enabled')
DUPLICATE_LINK_ID = _('Duplicate id attribute in link')
INVALID_TARGET = _('Invalid target specified')
INVALID_URL = _('Invalid url attribute')


@define
class LaunchFailure:
    """
    Why a link could not be launched, and whether the reason may be shown to the user.
    """
    reason = field()
    debug_mode = field(default=False)

    def __str__(self):
        return self.reason


@define
class LaunchRequest:
    """
    A message ready to be signed and sent to a tool.
    """
    tool = field()
    url = field()
    target = field()
    version = field()
    message_type = field()
    params = field(factory=dict)


def launch_user_from_django_user(user):
    """
    Return the launch details of a Django user.
    """
    if not getattr(user, 'is_authenticated', False):
        return LaunchUser(user_id='', roles=compat.get_user_roles(user))
    return LaunchUser(
        user_id=str(user.pk),
        display_name=user.get_full_name() or user.get_username(),
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        username=user.get_username(),
        roles=compat.get_user_roles(user),
    )


def map_user_roles(tool, site_roles, platform_settings, version):
    """
    Translate site roles into LTI roles.

    The mapping of a site role is a comma separated list of role tokens (e.g. `instructor,mentor`)
    taken from the tool setting `role_<site role>`, else from the platform option of the same name,
    else from the default mapping. Full role URNs/URIs are passed through unchanged.
    """
    vocabulary = LTI_1P3_CONTEXT_ROLE_MAP if version == LtiVersion.V1_3 else LTI_1P1_ROLE_MAP
    roles = []
    for site_role in site_roles:
        mapping = tool.get_setting(f'role_{site_role}') or platform_settings.role_mapping(site_role)
        for token in mapping.split(','):
            token = token.strip()
            if not token:
                continue
            if ':' in token:
                role = token
            else:
                role = vocabulary.get(token.lower())
                if role is None:
                    log.debug("Ignoring unknown LTI role %s mapped from %s", token, site_role)
                    continue
            if role not in roles:
                roles.append(role)
    return roles


def _dimension(value):
    match = re.match(r'\s*(\d+)', str(value or ''))
    return match.group(1) if match else ''


def build_message_params(tool, context, link, user, platform_settings, version, deep_link=False,
                         return_url=None):
    """
    Build the parameters of a launch or deep linking message.

    Parameters are added in a fixed order; a later parameter with the same name wins.

    Arguments:
        tool (Tool): the tool being launched
        context (LaunchContext): the post the link is embedded in
        link (LinkAttributes): attributes of the link
        user (LaunchUser): the user launching the tool
        platform_settings (PlatformSettings)
        version (LtiVersion): version of the message
        deep_link (bool): True for a deep linking request
        return_url (str): URL the tool returns the selected content to (deep linking only)

    Returns:
        dict: message parameters
    """
    target = link.target or tool.get_setting('presentationTarget') or 'window'

    params = {
        'context_id': str(context.post_id),
        'context_title': context.title or '',
        'context_type': 'CourseSection',
        'launch_presentation_document_target': 'window' if target in ('popup', 'urlonly') else target,
        'tool_consumer_info_product_family_code': PRODUCT_FAMILY_CODE,
        'tool_consumer_info_version': django.get_version(),
        'tool_consumer_instance_name': platform_settings.instance_name,
        'tool_consumer_instance_description': platform_settings.instance_description,
        'tool_consumer_instance_url': platform_settings.site_url,
        'tool_consumer_instance_contact_email': platform_settings.contact_email,
    }
    if platform_settings.platform_guid:
        params['tool_consumer_instance_guid'] = platform_settings.platform_guid

    if not deep_link:
        params['lti_message_type'] = LTI_1P1_LAUNCH_MESSAGE_TYPE
        params['resource_link_id'] = f'{context.post_id}-{link.id}'
        params['resource_link_title'] = link.title or link.text or link.tool
    else:
        params['lti_message_type'] = LTI_1P1_CONTENT_ITEM_MESSAGE_TYPE
        params['accept_media_types'] = 'application/vnd.ims.lti.v1.ltilink,*/*'
        params['accept_multiple'] = 'false'
        params['accept_presentation_document_targets'] = 'embed,frame,iframe,window,popup'
        params['content_item_return_url'] = return_url or get_platform_endpoint_url('content', tool=tool.code)

    if target in SIZED_TARGETS:
        width = _dimension(link.width) or tool.get_setting('presentationWidth')
        if width:
            params['launch_presentation_width'] = str(width)
        height = _dimension(link.height) or tool.get_setting('presentationHeight')
        if height:
            params['launch_presentation_height'] = str(height)

    if tool.get_bool_setting('sendUserId') and user.user_id:
        params['user_id'] = str(user.user_id)
    if tool.get_bool_setting('sendUserName'):
        if user.display_name:
            params['lis_person_name_full'] = user.display_name
        if user.first_name:
            params['lis_person_name_given'] = user.first_name
        if user.last_name:
            params['lis_person_name_family'] = user.last_name
    if tool.get_bool_setting('sendUserEmail') and user.email:
        params['lis_person_contact_email_primary'] = user.email
    if tool.get_bool_setting('sendUserRole'):
        roles = map_user_roles(tool, user.roles, platform_settings, version)
        if roles:
            params['roles'] = ','.join(roles)
    if tool.get_bool_setting('sendUserUsername') and user.username:
        params['ext_username'] = user.username

    include_original_names = version == LtiVersion.V1_3
    params.update(parse_custom_parameters(link.custom, include_original_names))
    params.update(parse_custom_parameters(tool.get_setting('custom'), include_original_names))

    return params


def resolve_message_url(tool, link, deep_link=False):
    """
    Return the URL a message is sent to, or None if the link's url attribute is not allowed.

    A relative link URL is appended to the tool's message URL; an absolute one must start with it.
    """
    if deep_link:
        return tool.deep_linking_url
    if not link.url:
        return tool.message_url
    if '://' not in link.url:
        return f'{tool.message_url}{link.url}'
    if tool.message_url and link.url.startswith(tool.message_url):
        return link.url
    return None


def resolve_launch(post, link_id, user, platform_settings, deep_link=False, tool_code=None, connector=None):
    """
    Resolve a launch of an embedded link, or a deep linking request, into a message.

    Arguments:
        post: the post the link is embedded in (with `id`, `title` and `content`), or None
        link_id (str): id attribute of the link (launch only)
        user (LaunchUser): the user launching the tool
        platform_settings (PlatformSettings)
        deep_link (bool): True for a deep linking request
        tool_code (str): code of the tool (deep linking only)

    Returns:
        (LaunchRequest, None) on success, or (None, LaunchFailure)
    """
    if post is None:
        return None, LaunchFailure(MISSING_POST)
    if not deep_link and not link_id:
        return None, LaunchFailure(MISSING_LINK_ID)

    if not deep_link:
        link = get_link_attributes(post.content, link_id)
        if link is None or not link.tool:
            return None, LaunchFailure(NO_TOOL)
    elif not tool_code:
        return None, LaunchFailure(MISSING_TOOL)
    else:
        link = LinkAttributes(tool=tool_code)

    tool = find_tool(link.tool, platform_settings, connector)
    if tool is None:
        return None, LaunchFailure(TOOL_NOT_FOUND)
    debug_mode = tool.debug_mode
    if not tool.enabled:
        return None, LaunchFailure(TOOL_NOT_ENABLED, debug_mode)
    if not deep_link and not link.id:
        return None, LaunchFailure(DUPLICATE_LINK_ID, debug_mode)

    target = link.target or tool.get_setting('presentationTarget') or 'window'
    if target not in PRESENTATION_TARGETS:
        return None, LaunchFailure(INVALID_TARGET, debug_mode)

    url = resolve_message_url(tool, link, deep_link)
    if url is None:
        return None, LaunchFailure(INVALID_URL, debug_mode)

    context = LaunchContext(post_id=post.id, title=getattr(post, 'title', ''))
    version = select_message_version(tool, platform_settings)
    params = build_message_params(tool, context, link, user, platform_settings, version, deep_link)

    return LaunchRequest(
        tool=tool,
        url=url,
        target=target,
        version=version,
        message_type=params['lti_message_type'],
        params=params,
    ), None

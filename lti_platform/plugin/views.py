"""
LTI Platform endpoint views.

All requests arrive at a single endpoint; the sub-action is selected by a query flag:

* `tools`: HTML list of the enabled tools, for the link picker
* `usecontentitem&tool=<code>`: JSON telling whether a tool supports deep linking
* `keys`: the platform's public JWKS
* `auth`: LTI 1.3 authentication requests from tools
* `storagejs`: the platform storage helper script
* `embed&post=<id>&id=<link>`: a page framing a link's launch
* `content&tool=<code>`: deep linking responses from tools
* `deeplink&post=<id>&tool=<code>`: deep linking requests to tools
* `post=<id>&id=<link>`: launch of an embedded link
"""
import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404, HttpResponseRedirect, JsonResponse
from django.shortcuts import render
from django.utils.crypto import get_random_string
from django.views.decorators.clickjacking import xframe_options_exempt
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from lti_platform.api import find_tool, get_public_keyset, list_enabled_tools, record_tool_access
from lti_platform.config import PlatformSettings
from lti_platform.data import LoginState
from lti_platform.deep_linking import (ContentItemError, handle_content_item_response, link_to_shortcode,
                                       read_content_item_message)
from lti_platform.launch import (MISSING_LINK_ID, MISSING_POST, NO_TOOL, TOOL_NOT_FOUND, LaunchFailure,
                                 launch_user_from_django_user, resolve_launch)
from lti_platform.lti_1p1.consumer import LtiConsumer1p1
from lti_platform.lti_1p1.exceptions import Lti1p1Error
from lti_platform.lti_1p3.consumer import LtiPlatform1p3, redirect_uri_allowed
from lti_platform.lti_1p3.exceptions import Lti1p3Exception, OidcError
from lti_platform.lti_1p3.login import get_login_state_owner, pop_login_state, save_login_state
from lti_platform.plugin import compat
from lti_platform.shortcodes import get_link_attributes, storage_script
from lti_platform.utils import _, get_platform_endpoint_url
from lti_platform.versions import LtiVersion

log = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400


def _error_page(request, platform_settings, reason=None, debug_mode=False):
    """
    Render the launch error page. The reason is only shown in debug mode.
    """
    context = {
        'reason': reason if (debug_mode or platform_settings.debug) else None,
    }
    return render(request, 'html/lti_launch_error.html', context, status=HTTP_BAD_REQUEST)


def _auto_submit_form(request, url, params):
    return render(request, 'html/lti_launch.html', {
        'launch_url': url,
        'launch_params': sorted(params.items()),
    })


def _get_post(request):
    try:
        post_id = int(request.GET.get('post', ''))
    except ValueError:
        return None
    return compat.get_post(post_id, request.user)


def _get_platform(tool, platform_settings):
    return LtiPlatform1p3(
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


@require_http_methods(["GET", "POST"])
@xframe_options_exempt
@csrf_exempt
def lti_platform_endpoint(request):
    """
    Dispatch a request to the sub-action named in its query string.
    """
    platform_settings = PlatformSettings.load()
    flags = request.GET

    if 'tools' in flags:
        return tools_list(request, platform_settings)
    if 'usecontentitem' in flags:
        return use_content_item(request, platform_settings)
    if 'keys' in flags:
        return public_keyset(request, platform_settings)
    if 'auth' in flags:
        return authentication_request(request, platform_settings)
    if 'storagejs' in flags:
        return storage_js(request, platform_settings)
    if 'embed' in flags:
        return embed_tool(request, platform_settings)
    if 'content' in flags:
        return content_item_response(request, platform_settings)
    if 'deeplink' in flags:
        return launch_message(request, platform_settings, deep_link=True)
    if 'post' in flags:
        return launch_message(request, platform_settings)

    raise Http404


def tools_list(request, platform_settings):
    """
    List the enabled tools for the editor's link picker.
    """
    if not compat.user_can_manage_tools(request.user):
        raise PermissionDenied
    return render(request, 'html/lti_tools_list.html', {
        'tools': list_enabled_tools(platform_settings),
    })


def use_content_item(request, platform_settings):
    """
    Tell the editor whether a tool supports deep linking.
    """
    tool = find_tool(request.GET.get('tool'), platform_settings)
    return JsonResponse({'useContentItem': bool(tool and tool.use_content_item)})


def public_keyset(request, platform_settings):
    """
    Publish the platform's public key set.
    """
    response = JsonResponse(get_public_keyset(platform_settings))
    response['Content-Disposition'] = 'attachment; filename=keyset.json'
    return response


def storage_js(request, platform_settings):
    """
    Serve the platform storage helper, when offered.
    """
    if not platform_settings.storage:
        raise Http404
    return render(request, 'js/lti_storage.js', {
        'origin': platform_settings.site_url,
    }, content_type='application/javascript')


def authentication_request(request, platform_settings):
    """
    Answer the authentication request of a tool with the LTI message saved when the login was initiated.

    The pending login is consumed whatever the outcome.
    """
    request_params = request.GET if request.method == 'GET' else request.POST
    login_state = pop_login_state(get_login_state_owner(request))

    tool = find_tool(request_params.get('client_id'), platform_settings)
    if tool is None or tool.record_id is None:
        log.info("Authentication request for unknown tool %r", request_params.get('client_id'))
        return _error_page(request, platform_settings, _('Tool not found.'))

    if login_state is not None and login_state.tool_code not in (None, tool.code):
        log.info("Pending login is for tool %s, not %s", login_state.tool_code, tool.code)
        login_state = None

    try:
        platform = _get_platform(tool, platform_settings)
        launch_request = platform.generate_launch_request(request_params.dict(), login_state)
    except OidcError as exc:
        log.info("LTI 1.3 authentication request from tool %s rejected: %s", tool.code, exc)
        redirect_uri = request_params.get('redirect_uri', '')
        if not redirect_uri or not redirect_uri_allowed(redirect_uri, tool.redirection_uris):
            return _error_page(request, platform_settings, str(exc), tool.debug_mode)
        error_params = {'error': exc.error, 'error_description': str(exc)}
        if request_params.get('state'):
            error_params['state'] = request_params['state']
        return _auto_submit_form(request, redirect_uri, error_params)
    except Lti1p3Exception as exc:
        log.warning("Unable to sign LTI 1.3 message for tool %s: %s", tool.code, exc, exc_info=True)
        return _error_page(request, platform_settings, str(exc), tool.debug_mode)

    return _auto_submit_form(request, request_params['redirect_uri'], launch_request)


def _send_message(request, launch_request, platform_settings):
    """
    Send a resolved message: a signed form for LTI 1.0 tools, or a login initiation for LTI 1.3 tools.
    """
    tool = launch_request.tool
    if launch_request.version == LtiVersion.V1_3:
        owner = get_login_state_owner(request)
        user = request.user
        # Anonymous users get an opaque hint; the session key stays on the platform
        login_hint = str(user.pk) if user.is_authenticated else get_random_string(32)
        lti_message_hint = get_random_string(32)
        save_login_state(owner, LoginState(
            message_url=launch_request.url,
            login_hint=login_hint,
            params=launch_request.params,
            lti_message_hint=lti_message_hint,
            tool_code=tool.code,
        ))
        try:
            platform = _get_platform(tool, platform_settings)
        except Lti1p3Exception as exc:
            log.warning("Unable to load the platform key: %s", exc)
            return _error_page(request, platform_settings, str(exc), tool.debug_mode)
        response = HttpResponseRedirect(platform.prepare_preflight_url(
            launch_request.url,
            login_hint,
            lti_message_hint,
            storage_target='_parent' if platform_settings.storage else None,
        ))
    else:
        consumer = LtiConsumer1p1(launch_request.url, tool.key, tool.secret)
        try:
            params = consumer.generate_launch_request(launch_request.params, launch_request.message_type)
        except Lti1p1Error as exc:
            log.warning("Unable to sign LTI message for tool %s: %s", tool.code, exc)
            return _error_page(request, platform_settings, str(exc), tool.debug_mode)
        response = _auto_submit_form(request, launch_request.url, params)

    record_tool_access(tool)
    return response


def launch_message(request, platform_settings, deep_link=False):
    """
    Launch an embedded link, or send a deep linking request to a tool.
    """
    launch_request, failure = resolve_launch(
        _get_post(request),
        request.GET.get('id', ''),
        launch_user_from_django_user(request.user),
        platform_settings,
        deep_link=deep_link,
        tool_code=request.GET.get('tool', ''),
    )
    if failure is not None:
        log.info("Unable to launch LTI link: %s", failure)
        return _error_page(request, platform_settings, str(failure), failure.debug_mode)
    return _send_message(request, launch_request, platform_settings)


def embed_tool(request, platform_settings):
    """
    Render a page framing the launch of an embedded link.
    """
    post = _get_post(request)
    link_id = request.GET.get('id', '')
    failure = None
    link = tool = None
    if post is None:
        failure = LaunchFailure(MISSING_POST)
    elif not link_id:
        failure = LaunchFailure(MISSING_LINK_ID)
    else:
        link = get_link_attributes(post.content, link_id)
        if link is None or not link.tool:
            failure = LaunchFailure(NO_TOOL)
        else:
            tool = find_tool(link.tool, platform_settings)
            if tool is None:
                failure = LaunchFailure(TOOL_NOT_FOUND)

    if failure is not None:
        return render(request, 'html/lti_embed.html', {
            'reason': str(failure) if platform_settings.debug else None,
            'failed': True,
        }, status=HTTP_BAD_REQUEST)

    width = link.width or tool.get_setting('presentationWidth') or '100%'
    height = link.height or tool.get_setting('presentationHeight') or '400px'
    return render(request, 'html/lti_embed.html', {
        'failed': False,
        'storage_script': storage_script(platform_settings),
        'title': link.title or post.title,
        'launch_url': get_platform_endpoint_url(post=post.id, id=link_id),
        'width': f'{width}px' if str(width).isdigit() else width,
        'height': f'{height}px' if str(height).isdigit() else height,
    })


def content_item_response(request, platform_settings):
    """
    Receive the link selected in a tool and hand its shortcode to the editor window.
    """
    code = request.GET.get('tool', '')
    tool = find_tool(code, platform_settings)
    shortcode = None
    reason = None

    if tool is None:
        reason = TOOL_NOT_FOUND
    else:
        params = list(request.GET.items()) + list(request.POST.items())
        uri = platform_settings.site_url + request.path
        try:
            content_items = read_content_item_message(tool, params, uri, request.method, platform_settings)
        except ContentItemError as exc:
            reason = str(exc)
        else:
            link, reason = handle_content_item_response(content_items, tool.code)
            if link is not None:
                shortcode = link_to_shortcode(link, link.title or tool.name)

    if reason:
        log.info("Content-item response for tool %s rejected: %s", code, reason)

    return render(request, 'html/lti_content_item.html', {
        'shortcode': shortcode,
        'reason': reason if platform_settings.debug else None,
    })

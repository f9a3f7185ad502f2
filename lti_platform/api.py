"""
Python API for the LTI Platform.

These functions manage the registered tools; they are used by the views, the admin
and the management commands, and can be used by other Django applications.
"""
import logging
from datetime import datetime, timezone

from attrs import define, field

from .data import TOOL_SCOPE_NETWORK, TOOL_SCOPE_SITE, Tool
from .dataconnector import ToolDataConnector
from .exceptions import DuplicateToolCode, ToolNotFound, ToolSaveError
from .lti_1p3.exceptions import InvalidRsaKey
from .lti_1p3.key_handlers import PlatformKeyHandler
from .utils import _
from .versions import can_be_enabled

log = logging.getLogger(__name__)

NOTICE_SUCCESS = 'success'
NOTICE_WARNING = 'warning'
NOTICE_ERROR = 'error'


@define
class Notice:
    """
    A message to show to the administrator after a tool operation.
    """
    level = field()
    message = field()


def _get_connector(connector):
    return connector if connector is not None else ToolDataConnector()


def new_tool(platform_settings, scope=TOOL_SCOPE_SITE):
    """
    Return a new, unsaved tool initialised with the platform privacy and presentation defaults.
    """
    return Tool(
        site_id=None if scope == TOOL_SCOPE_NETWORK else platform_settings.site_id,
        scope=scope,
        settings=platform_settings.tool_defaults(),
    )


def get_tool(record_id, connector=None):
    """
    Return the tool stored with the given id.

    Raises:
        ToolNotFound if there is no such tool.
    """
    tool = _get_connector(connector).load_tool_by_id(record_id)
    if tool is None:
        raise ToolNotFound(f"No LTI tool with id {record_id}.")
    return tool


def find_tool(code, platform_settings, connector=None):
    """
    Return the tool with the given code available to the current site, or None.

    An enabled network tool takes precedence over a site tool with the same code.
    """
    connector = _get_connector(connector)
    code = (code or '').strip().lower()
    if not code:
        return None

    tool = connector.load_tool_by_code(code, scope=TOOL_SCOPE_NETWORK)
    if tool is not None and tool.enabled:
        return tool
    return connector.load_tool_by_code(code, scope=TOOL_SCOPE_SITE, site_id=platform_settings.site_id)


def list_enabled_tools(platform_settings, connector=None):
    """
    Return the enabled tools available to the current site, sorted by code.
    """
    connector = _get_connector(connector)
    tools = {
        tool.code: tool
        for tool in connector.list_tools(
            status='publish', scope=TOOL_SCOPE_SITE, site_id=platform_settings.site_id
        )
    }
    for tool in connector.list_tools(status='publish', scope=TOOL_SCOPE_NETWORK):
        tools[tool.code] = tool
    return [tools[code] for code in sorted(tools)]


def check_duplicate_code(tool, code, connector=None):
    """
    Raise DuplicateToolCode if another non-deleted tool in the same scope uses the code.
    """
    connector = _get_connector(connector)
    site_id = None if tool.scope == TOOL_SCOPE_NETWORK else tool.site_id
    for other in connector.list_tools(scope=tool.scope, site_id=site_id):
        if other.record_id == tool.record_id or other.deleted:
            continue
        if other.code == code:
            raise DuplicateToolCode(_('A tool already exists with this code.'))


def save_tool(tool, platform_settings, connector=None):
    """
    Validate and store a tool.

    The code is lower-cased. A tool which cannot be enabled is saved disabled,
    with a warning notice.

    Returns:
        list: `Notice` objects describing the outcome

    Raises:
        DuplicateToolCode if another tool in the same scope uses the code; nothing is stored.
        ToolSaveError if the tool could not be stored.
    """
    connector = _get_connector(connector)
    code = (tool.code or '').strip().lower()
    if not code:
        raise ToolSaveError(_('A tool must have a code.'))

    if not tool.deleted:
        check_duplicate_code(tool, code, connector)
    tool.code = code

    notices = []
    if tool.enabled and not can_be_enabled(tool, platform_settings):
        tool.enabled = False
        log.info("Tool %s saved disabled as it is not fully configured", code)
        notices.append(Notice(NOTICE_WARNING, _(
            'This tool cannot be enabled because it is not fully configured for either LTI 1.0 or LTI 1.3, '
            'or no private key has been defined.'
        )))

    if not connector.save_tool(tool):
        raise ToolSaveError(_('An error occurred when saving tool.'))

    notices.append(Notice(NOTICE_SUCCESS, _('Tool updated.')))
    return notices


def enable_tool(tool, platform_settings, connector=None):
    tool.enabled = True
    return save_tool(tool, platform_settings, connector)


def disable_tool(tool, platform_settings, connector=None):
    tool.enabled = False
    return save_tool(tool, platform_settings, connector)


def trash_tool(tool, connector=None):
    """
    Move a tool to the trash. Trashed tools cannot be launched.
    """
    if not _get_connector(connector).trash_tool(tool):
        raise ToolSaveError(_('An error occurred when saving tool.'))


def restore_tool(tool, platform_settings, connector=None):
    """
    Restore a tool from the trash, as long as its code has not been reused in the meantime.
    """
    tool.deleted = False
    try:
        return save_tool(tool, platform_settings, connector)
    except (DuplicateToolCode, ToolSaveError):
        tool.deleted = True
        raise


def delete_tool(tool, connector=None):
    """
    Permanently delete a tool.
    """
    if not _get_connector(connector).delete_tool(tool):
        raise ToolSaveError(_('An error occurred when deleting tool.'))


def record_tool_access(tool, connector=None, today=None):
    """
    Record that a tool has been launched today (UTC).

    The tool is only written the first time it is launched on a given day.

    Returns:
        bool: True if the last access date was updated
    """
    today = today or datetime.now(timezone.utc).date()
    if tool.last_access is not None and tool.last_access.astimezone(timezone.utc).date() == today:
        return False

    tool.last_access = datetime(today.year, today.month, today.day, tzinfo=timezone.utc)
    if not _get_connector(connector).save_tool(tool):
        log.warning("Unable to record the last access of tool %s", tool.code)
        return False
    return True


def get_public_keyset(platform_settings):
    """
    Return the JWKS publishing the platform's public key.
    """
    if not platform_settings.private_key or not platform_settings.kid:
        return {'keys': []}
    try:
        return PlatformKeyHandler(platform_settings.private_key, platform_settings.kid).get_public_jwk()
    except InvalidRsaKey:
        log.warning("The platform private key could not be loaded; publishing an empty key set.")
        return {'keys': []}

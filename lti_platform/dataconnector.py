"""
Persistence of LTI Tools.

A tool is stored as one `ToolRecord` document: the name as title, the code as slug, the
enabled/deleted flags as status and every other field in a flat JSON object of settings.
The structured fields are carried under reserved keys prefixed with a double underscore;
all the other keys are plain tool settings. The split between the two happens here, and
only here.
"""
import json
import logging
from datetime import datetime, timezone

from django.db import DatabaseError

from lti_platform.data import TOOL_SCOPE_NETWORK, TOOL_SCOPE_SITE, Tool
from lti_platform.models import ToolRecord

log = logging.getLogger(__name__)

LAST_ACCESS_FORMAT = '%Y-%m-%d %H:%M:%S'

RESERVED_KEYS = (
    '__key',
    '__secret',
    '__messageUrl',
    '__useContentItem',
    '__contentItemUrl',
    '__initiateLoginUrl',
    '__redirectionUris',
    '__jku',
    '__rsaKey',
    '__lastAccess',
    '__debugMode',
)


def _encode_redirection_uris(uris):
    return json.dumps(list(uris)).replace('&', '&amp;').replace('"', '&quot;')


def _decode_redirection_uris(value):
    if not value:
        return []
    try:
        uris = json.loads(value.replace('&quot;', '"').replace('&amp;', '&'))
    except ValueError:
        log.warning("Ignoring malformed redirection URIs: %r", value)
        return []
    if not isinstance(uris, list):
        return []
    return [str(uri) for uri in uris]


def _encode_rsa_key(key):
    return key.replace('&', '&amp;').replace('\r\n', '&#13;&#10;')


def _decode_rsa_key(value):
    return value.replace('&#13;&#10;', '\r\n').replace('&amp;', '&')


def _status_for(tool):
    if tool.deleted:
        return ToolRecord.STATUS_TRASH
    if tool.enabled:
        return ToolRecord.STATUS_PUBLISH
    return ToolRecord.STATUS_DRAFT


def tool_to_post(tool):
    """
    Serialize a tool into its stored document.

    Returns:
        dict: id, title, slug, status, scope, site_id, content (JSON string), created and modified
    """
    document = {name: str(value) for name, value in tool.settings.items()}
    reserved = {
        '__key': tool.key,
        '__secret': tool.secret,
        '__messageUrl': tool.message_url,
        '__useContentItem': 'true' if tool.use_content_item else None,
        '__contentItemUrl': tool.content_item_url,
        '__initiateLoginUrl': tool.initiate_login_url,
        '__redirectionUris': _encode_redirection_uris(tool.redirection_uris),
        '__jku': tool.jku,
        '__rsaKey': _encode_rsa_key(tool.rsa_key) if tool.rsa_key else None,
        '__lastAccess': tool.last_access.strftime(LAST_ACCESS_FORMAT) if tool.last_access else None,
        '__debugMode': 'true' if tool.debug_mode else None,
    }
    document.update({name: value for name, value in reserved.items() if value})

    return {
        'id': tool.record_id,
        'title': tool.name,
        'slug': tool.code,
        'status': _status_for(tool),
        'scope': tool.scope,
        'site_id': 0 if tool.scope == TOOL_SCOPE_NETWORK else tool.site_id,
        'content': json.dumps(document),
        'created': tool.created,
        'modified': tool.updated,
    }


def tool_from_post(post):
    """
    Deserialize a stored document into a tool.

    Arguments:
        post (dict): as returned by `tool_to_post` or `record_to_post`
    """
    try:
        document = json.loads(post.get('content') or '{}')
    except ValueError:
        log.warning("Tool document %r is not valid JSON, its settings are ignored.", post.get('id'))
        document = {}
    if not isinstance(document, dict):
        document = {}

    reserved = {name: document.pop(name, None) or '' for name in RESERVED_KEYS}

    last_access = None
    if reserved['__lastAccess']:
        try:
            last_access = datetime.strptime(reserved['__lastAccess'], LAST_ACCESS_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            log.warning("Ignoring malformed last access date %r", reserved['__lastAccess'])

    status = post.get('status')
    scope = post.get('scope') or TOOL_SCOPE_SITE
    return Tool(
        record_id=post.get('id'),
        site_id=None if scope == TOOL_SCOPE_NETWORK else post.get('site_id'),
        scope=scope,
        code=post.get('slug') or '',
        name=post.get('title') or '',
        enabled=status == ToolRecord.STATUS_PUBLISH,
        deleted=status == ToolRecord.STATUS_TRASH,
        debug_mode=reserved['__debugMode'] == 'true',
        message_url=reserved['__messageUrl'],
        use_content_item=reserved['__useContentItem'] == 'true',
        content_item_url=reserved['__contentItemUrl'],
        key=reserved['__key'],
        secret=reserved['__secret'],
        initiate_login_url=reserved['__initiateLoginUrl'],
        redirection_uris=_decode_redirection_uris(reserved['__redirectionUris']),
        jku=reserved['__jku'],
        rsa_key=_decode_rsa_key(reserved['__rsaKey']),
        settings={name: str(value) for name, value in document.items() if value is not None},
        created=post.get('created'),
        updated=post.get('modified'),
        last_access=last_access,
    )


def record_to_post(record):
    """
    Return the stored document of a `ToolRecord`.
    """
    return {
        'id': record.pk,
        'title': record.title,
        'slug': record.slug,
        'status': record.status,
        'scope': record.scope,
        'site_id': record.site_id,
        'content': record.content,
        'created': record.created,
        'modified': record.modified,
    }


class ToolDataConnector:
    """
    Loads and stores tools as `ToolRecord` documents.
    """

    def _queryset(self, scope=TOOL_SCOPE_SITE, site_id=None):
        records = ToolRecord.objects.filter(scope=scope)
        if scope == TOOL_SCOPE_SITE and site_id is not None:
            records = records.filter(site_id=site_id)
        return records

    def load_tool_by_id(self, record_id):
        """
        Return the tool stored with the given id, or None.
        """
        try:
            record = ToolRecord.objects.get(pk=record_id)
        except (ToolRecord.DoesNotExist, ValueError, TypeError):
            return None
        return tool_from_post(record_to_post(record))

    def load_tool_by_code(self, code, scope=TOOL_SCOPE_SITE, site_id=None):
        """
        Return the non-deleted tool with the given code in a scope, or None.
        """
        record = (
            self._queryset(scope, site_id)
            .filter(slug=(code or '').lower())
            .exclude(status=ToolRecord.STATUS_TRASH)
            .order_by('pk')
            .first()
        )
        if record is None:
            return None
        return tool_from_post(record_to_post(record))

    def list_tools(self, status=None, scope=TOOL_SCOPE_SITE, site_id=None):
        """
        Return the tools of a scope, optionally filtered by status (publish, draft or trash).
        """
        records = self._queryset(scope, site_id)
        if status:
            records = records.filter(status=status)
        return [tool_from_post(record_to_post(record)) for record in records.order_by('slug', 'pk')]

    def save_tool(self, tool):
        """
        Insert or update a tool. Sets the record id and timestamps of the tool on success.

        Returns:
            bool: True if the tool was stored
        """
        post = tool_to_post(tool)
        fields = {
            'title': post['title'],
            'slug': post['slug'],
            'status': post['status'],
            'scope': post['scope'],
            'site_id': post['site_id'] or 0,
            'content': post['content'],
        }
        try:
            if tool.record_id is not None:
                updated = ToolRecord.objects.filter(pk=tool.record_id).update(**fields)
                if not updated:
                    log.error("Unable to save tool %r: record %s no longer exists", tool.code, tool.record_id)
                    return False
                # QuerySet.update() bypasses auto_now
                record = ToolRecord.objects.get(pk=tool.record_id)
                record.save(update_fields=['modified'])
            else:
                record = ToolRecord.objects.create(**fields)
        except DatabaseError:
            log.error("Unable to save tool %r", tool.code, exc_info=True)
            return False

        tool.record_id = record.pk
        tool.created = record.created
        tool.updated = record.modified
        return True

    def trash_tool(self, tool):
        tool.deleted = True
        return self.save_tool(tool)

    def restore_tool(self, tool):
        tool.deleted = False
        return self.save_tool(tool)

    def delete_tool(self, tool):
        """
        Permanently delete a tool.
        """
        if tool.record_id is None:
            return False
        try:
            deleted, _ = ToolRecord.objects.filter(pk=tool.record_id).delete()
        except DatabaseError:
            log.error("Unable to delete tool %r", tool.code, exc_info=True)
            return False
        if deleted:
            tool.record_id = None
            tool.created = None
            tool.updated = None
        return bool(deleted)

"""
Admin views for LTI Platform models.
"""
import logging

from django.contrib import admin, messages
from django.http import HttpResponseRedirect
from django.urls import reverse

from lti_platform import api
from lti_platform.config import PlatformSettings
from lti_platform.dataconnector import record_to_post, tool_from_post
from lti_platform.exceptions import LtiError
from lti_platform.forms import LtiToolAdminForm, PlatformConfigurationAdminForm
from lti_platform.models import PlatformConfiguration, ToolRecord
from lti_platform.versions import resolve_version

log = logging.getLogger(__name__)

NOTICE_LEVELS = {
    api.NOTICE_SUCCESS: messages.SUCCESS,
    api.NOTICE_WARNING: messages.WARNING,
    api.NOTICE_ERROR: messages.ERROR,
}


def _record_tool(record):
    return tool_from_post(record_to_post(record))


class ToolRecordAdmin(admin.ModelAdmin):
    """
    Admin view for LTI tools.

    Tools are saved through the Python API so that codes are checked and tools
    which are not fully configured are kept disabled.
    """
    form = LtiToolAdminForm
    list_display = ('title', 'slug', 'scope', 'status', 'lti_version', 'last_access', 'modified')
    list_filter = ('status', 'scope')
    search_fields = ('title', 'slug')
    actions = ('enable_tools', 'disable_tools', 'trash_tools', 'restore_tools')
    fieldsets = (
        (None, {
            'fields': ('name', 'code', 'scope', 'enabled', 'debug_mode'),
        }),
        ('Messages', {
            'fields': ('message_url', 'use_content_item', 'content_item_url'),
        }),
        ('LTI 1.0/1.1/1.2', {
            'fields': ('key', 'secret'),
        }),
        ('LTI 1.3', {
            'fields': ('initiate_login_url', 'redirection_uris', 'jku', 'rsa_key'),
        }),
        ('Privacy', {
            'fields': ('sendUserName', 'sendUserId', 'sendUserEmail', 'sendUserRole', 'sendUserUsername'),
        }),
        ('Presentation', {
            'fields': ('presentationTarget', 'presentationWidth', 'presentationHeight', 'custom'),
        }),
        ('Role mapping', {
            'classes': ('collapse',),
            'fields': ('role_administrator', 'role_editor', 'role_author', 'role_contributor', 'role_subscriber'),
        }),
    )

    @admin.display(description='LTI version')
    def lti_version(self, record):
        version, signature_method = resolve_version(_record_tool(record))
        return f'{version.value} ({signature_method})'

    @admin.display(description='Last access')
    def last_access(self, record):
        last_access = _record_tool(record).last_access
        return last_access.date() if last_access else '-'

    def _show_notices(self, request, notices):
        for notice in notices:
            self.message_user(request, notice.message, NOTICE_LEVELS[notice.level])

    def save_model(self, request, obj, form, change):
        tool = form.get_tool()
        try:
            notices = api.save_tool(tool, form.platform_settings)
        except LtiError as err:
            log.warning("Unable to save tool %s: %s", tool.code, err)
            self.message_user(request, str(err), messages.ERROR)
            request.lti_tool_save_failed = True
            return
        obj.pk = tool.record_id
        obj.refresh_from_db()
        self._show_notices(request, notices)

    def log_addition(self, request, obj, message):
        if not getattr(request, 'lti_tool_save_failed', False):
            super().log_addition(request, obj, message)

    def log_change(self, request, obj, message):
        if not getattr(request, 'lti_tool_save_failed', False):
            super().log_change(request, obj, message)

    def response_add(self, request, obj, post_url_continue=None):
        if getattr(request, 'lti_tool_save_failed', False):
            return HttpResponseRedirect(request.path)
        return super().response_add(request, obj, post_url_continue)

    def response_change(self, request, obj):
        if getattr(request, 'lti_tool_save_failed', False):
            return HttpResponseRedirect(request.path)
        return super().response_change(request, obj)

    def delete_model(self, request, obj):
        try:
            api.delete_tool(_record_tool(obj))
        except LtiError as err:
            log.warning("Unable to delete tool %s: %s", obj.slug, err)
            self.message_user(request, str(err), messages.ERROR)
            request.lti_tool_save_failed = True

    def response_delete(self, request, obj_display, obj_id):
        if getattr(request, 'lti_tool_save_failed', False):
            return HttpResponseRedirect(reverse('admin:lti_platform_toolrecord_changelist'))
        return super().response_delete(request, obj_display, obj_id)

    def _bulk_update(self, request, queryset, update):
        platform_settings = PlatformSettings.load()
        for record in queryset:
            tool = _record_tool(record)
            try:
                self._show_notices(request, update(tool, platform_settings) or [])
            except LtiError as err:
                self.message_user(request, f'{tool.code}: {err}', messages.ERROR)

    @admin.action(description='Enable selected LTI tools')
    def enable_tools(self, request, queryset):
        self._bulk_update(request, queryset, api.enable_tool)

    @admin.action(description='Disable selected LTI tools')
    def disable_tools(self, request, queryset):
        self._bulk_update(request, queryset, api.disable_tool)

    @admin.action(description='Move selected LTI tools to the trash')
    def trash_tools(self, request, queryset):
        self._bulk_update(request, queryset, lambda tool, platform_settings: api.trash_tool(tool))

    @admin.action(description='Restore selected LTI tools from the trash')
    def restore_tools(self, request, queryset):
        self._bulk_update(request, queryset, api.restore_tool)


class PlatformConfigurationAdmin(admin.ModelAdmin):
    """
    Admin view for the platform options. A single configuration is kept.
    """
    form = PlatformConfigurationAdminForm
    fieldsets = (
        (None, {
            'fields': ('debug', 'uninstall', 'platformguid'),
        }),
        ('Default privacy settings', {
            'fields': ('sendusername', 'senduserid', 'senduseremail', 'senduserrole', 'senduserusername'),
        }),
        ('Default presentation settings', {
            'fields': ('presentationtarget', 'presentationwidth', 'presentationheight'),
        }),
        ('Default role mapping', {
            'fields': ('role_administrator', 'role_editor', 'role_author', 'role_contributor', 'role_subscriber'),
        }),
        ('LTI 1.3', {
            'fields': ('kid', 'privatekey', 'storage'),
            'description': 'The public key set is published at the platform endpoint with the keys flag.',
        }),
    )

    def has_add_permission(self, request):
        return not PlatformConfiguration.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(ToolRecord, ToolRecordAdmin)
admin.site.register(PlatformConfiguration, PlatformConfigurationAdmin)

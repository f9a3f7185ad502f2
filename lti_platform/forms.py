"""
Defines the forms used to edit LTI tools and the platform options in the Django admin.
"""
import logging

from django import forms
from django.utils.translation import gettext_lazy as _

from lti_platform.api import check_duplicate_code, new_tool
from lti_platform.config import DEFAULT_ROLE_MAPPING, TOOL_DEFAULT_OPTIONS, PlatformSettings
from lti_platform.data import PRESENTATION_TARGETS, TOOL_SCOPE_NETWORK
from lti_platform.dataconnector import record_to_post, tool_from_post
from lti_platform.exceptions import DuplicateToolCode
from lti_platform.models import PlatformConfiguration, ToolRecord

log = logging.getLogger(__name__)

TARGET_CHOICES = [('', _('(default)'))] + [(target, target) for target in PRESENTATION_TARGETS]

# Tool fields edited on the form, other than the settings
TOOL_FIELDS = (
    'name', 'code', 'enabled', 'debug_mode', 'message_url', 'use_content_item', 'content_item_url',
    'key', 'secret', 'initiate_login_url', 'jku', 'rsa_key',
)

# Boolean tool settings, stored as 'true' or removed
TOOL_BOOLEAN_SETTINGS = ('sendUserName', 'sendUserId', 'sendUserEmail', 'sendUserRole', 'sendUserUsername')

TOOL_TEXT_SETTINGS = ('presentationTarget', 'presentationWidth', 'presentationHeight', 'custom')


def _role_field_name(role):
    return f'role_{role}'


class LtiToolAdminForm(forms.ModelForm):
    """
    Form editing an LTI tool.

    The tool is read from and written to its `ToolRecord` through `Tool`; see `get_tool`.
    """
    name = forms.CharField(label=_('Name'), max_length=255)
    code = forms.SlugField(
        label=_('Code'), max_length=200,
        help_text=_('Unique code of the tool, also used as its LTI 1.3 client ID.'),
    )
    enabled = forms.BooleanField(label=_('Enabled'), required=False)
    debug_mode = forms.BooleanField(
        label=_('Debug mode'), required=False,
        help_text=_('Show the reason why a launch of this tool fails.'),
    )
    message_url = forms.URLField(label=_('Launch URL'), required=False)
    use_content_item = forms.BooleanField(label=_('Supports deep linking'), required=False)
    content_item_url = forms.URLField(
        label=_('Deep linking URL'), required=False,
        help_text=_('Defaults to the launch URL.'),
    )
    key = forms.CharField(label=_('Consumer key'), required=False)
    secret = forms.CharField(label=_('Shared secret'), required=False)
    initiate_login_url = forms.URLField(label=_('Initiate login URL'), required=False)
    redirection_uris = forms.CharField(
        label=_('Redirection URI(s)'), required=False, widget=forms.Textarea(attrs={'rows': 3}),
        help_text=_('One URI per line; a URI ending with * matches any URI starting with it.'),
    )
    jku = forms.URLField(label=_('Public keyset URL'), required=False)
    rsa_key = forms.CharField(
        label=_('Public key'), required=False, widget=forms.Textarea(attrs={'rows': 8}),
        help_text=_('PEM public key of the tool, used when no keyset URL is defined.'),
    )
    sendUserName = forms.BooleanField(label=_('Send user name'), required=False)
    sendUserId = forms.BooleanField(label=_('Send user ID'), required=False)
    sendUserEmail = forms.BooleanField(label=_('Send user email'), required=False)
    sendUserRole = forms.BooleanField(label=_('Send user role'), required=False)
    sendUserUsername = forms.BooleanField(label=_('Send username'), required=False)
    presentationTarget = forms.ChoiceField(label=_('Presentation target'), choices=TARGET_CHOICES, required=False)
    presentationWidth = forms.CharField(label=_('Width'), required=False)
    presentationHeight = forms.CharField(label=_('Height'), required=False)
    custom = forms.CharField(
        label=_('Custom parameters'), required=False, widget=forms.Textarea(attrs={'rows': 3}),
        help_text=_('One name=value pair per line.'),
    )
    role_administrator = forms.CharField(label=_('LTI roles for administrators'), required=False)
    role_editor = forms.CharField(label=_('LTI roles for editors'), required=False)
    role_author = forms.CharField(label=_('LTI roles for authors'), required=False)
    role_contributor = forms.CharField(label=_('LTI roles for contributors'), required=False)
    role_subscriber = forms.CharField(label=_('LTI roles for subscribers'), required=False)

    class Meta:
        model = ToolRecord
        fields = ('scope',)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.platform_settings = PlatformSettings.load()
        if self.instance.pk:
            self.tool = tool_from_post(record_to_post(self.instance))
        else:
            self.tool = new_tool(self.platform_settings)

        for name in TOOL_FIELDS:
            self.initial.setdefault(name, getattr(self.tool, name))
        self.initial.setdefault('redirection_uris', '\n'.join(self.tool.redirection_uris))
        for name in TOOL_BOOLEAN_SETTINGS:
            self.initial.setdefault(name, self.tool.get_bool_setting(name))
        for name in TOOL_TEXT_SETTINGS:
            self.initial.setdefault(name, self.tool.get_setting(name))
        for role in DEFAULT_ROLE_MAPPING:
            self.initial.setdefault(_role_field_name(role), self.tool.get_setting(_role_field_name(role)))

    def clean_code(self):
        return self.cleaned_data['code'].strip().lower()

    def clean_redirection_uris(self):
        return [uri.strip() for uri in self.cleaned_data['redirection_uris'].splitlines() if uri.strip()]

    def clean(self):
        cleaned_data = super().clean()
        code = cleaned_data.get('code')
        if code:
            tool = self.get_tool()
            try:
                check_duplicate_code(tool, code)
            except DuplicateToolCode as err:
                self.add_error('code', str(err))
        return cleaned_data

    def get_tool(self):
        """
        Return the edited tool, with the cleaned form values applied.
        """
        tool = self.tool
        data = self.cleaned_data
        tool.scope = data.get('scope') or tool.scope
        tool.site_id = None if tool.scope == TOOL_SCOPE_NETWORK else (tool.site_id or self.platform_settings.site_id)
        for name in TOOL_FIELDS:
            if name in data:
                setattr(tool, name, data[name])
        tool.redirection_uris = data.get('redirection_uris', tool.redirection_uris)
        for name in TOOL_BOOLEAN_SETTINGS:
            tool.set_setting(name, 'true' if data.get(name) else None)
        for name in TOOL_TEXT_SETTINGS:
            tool.set_setting(name, data.get(name, '').strip())
        for role in DEFAULT_ROLE_MAPPING:
            tool.set_setting(_role_field_name(role), data.get(_role_field_name(role), '').strip())
        return tool


class PlatformConfigurationAdminForm(forms.ModelForm):
    """
    Form editing the platform options.
    """
    debug = forms.BooleanField(label=_('Debug mode'), required=False)
    uninstall = forms.BooleanField(
        label=_('Delete data on uninstall'), required=False,
        help_text=_('Allow the uninstall_lti_platform command to delete all tools and options.'),
    )
    platformguid = forms.CharField(label=_('Platform GUID'), required=False)
    sendusername = forms.BooleanField(label=_('Send user name by default'), required=False)
    senduserid = forms.BooleanField(label=_('Send user ID by default'), required=False)
    senduseremail = forms.BooleanField(label=_('Send user email by default'), required=False)
    senduserrole = forms.BooleanField(label=_('Send user role by default'), required=False)
    senduserusername = forms.BooleanField(label=_('Send username by default'), required=False)
    presentationtarget = forms.ChoiceField(
        label=_('Default presentation target'), choices=TARGET_CHOICES, required=False,
    )
    presentationwidth = forms.CharField(label=_('Default width'), required=False)
    presentationheight = forms.CharField(label=_('Default height'), required=False)
    kid = forms.CharField(label=_('Key ID'), required=False)
    privatekey = forms.CharField(
        label=_('Private key'), required=False, widget=forms.Textarea(attrs={'rows': 8}),
        help_text=_('PEM RSA private key used to sign LTI 1.3 messages.'),
    )
    storage = forms.BooleanField(label=_('Offer platform storage to LTI 1.3 tools'), required=False)
    role_administrator = forms.CharField(label=_('LTI roles for administrators'), required=False)
    role_editor = forms.CharField(label=_('LTI roles for editors'), required=False)
    role_author = forms.CharField(label=_('LTI roles for authors'), required=False)
    role_contributor = forms.CharField(label=_('LTI roles for contributors'), required=False)
    role_subscriber = forms.CharField(label=_('LTI roles for subscribers'), required=False)

    class Meta:
        model = PlatformConfiguration
        fields = ()

    BOOLEAN_OPTIONS = ('debug', 'uninstall', 'storage') + tuple(
        option for option in TOOL_DEFAULT_OPTIONS if option.startswith('send')
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for role, default in DEFAULT_ROLE_MAPPING.items():
            self.fields[_role_field_name(role)].help_text = _('Comma separated; defaults to %(default)s.') % {
                'default': default,
            }
        options = self.instance.options or {}
        for name in self.fields:
            if name in self.BOOLEAN_OPTIONS:
                self.initial.setdefault(name, options.get(name) in ('true', True))
            else:
                self.initial.setdefault(name, options.get(name, ''))

    def save(self, commit=True):
        options = dict(self.instance.options or {})
        for name in self.fields:
            value = self.cleaned_data.get(name)
            if name in self.BOOLEAN_OPTIONS:
                value = 'true' if value else ''
            value = (value or '').strip()
            if value:
                options[name] = value
            else:
                options.pop(name, None)
        self.instance.options = options
        return super().save(commit=commit)

"""
Platform-wide settings of the LTI Platform.

The settings are built once per request with `PlatformSettings.load()` and passed explicitly
to the components that need them. A change made by an administrator is picked up by the next
request.
"""
import logging

from attrs import define, field
from django.conf import settings

from lti_platform.models import PlatformConfiguration
from lti_platform.plugin import compat
from lti_platform.utils import get_site_url

log = logging.getLogger(__name__)

# Privacy and presentation options copied into the settings of new tools.
TOOL_DEFAULT_OPTIONS = {
    'sendusername': 'sendUserName',
    'senduserid': 'sendUserId',
    'senduseremail': 'sendUserEmail',
    'senduserrole': 'sendUserRole',
    'senduserusername': 'sendUserUsername',
    'presentationtarget': 'presentationTarget',
    'presentationwidth': 'presentationWidth',
    'presentationheight': 'presentationHeight',
}

# Default mapping of site roles onto LTI role tokens, used when neither the tool nor the
# platform options define a `role_<name>` entry.
DEFAULT_ROLE_MAPPING = {
    'administrator': 'administrator',
    'editor': 'contentdeveloper',
    'author': 'instructor',
    'contributor': 'teachingassistant',
    'subscriber': 'learner',
}


# Level of the app logger before debug mode raised it.
_configured_level = {}


def _set_debug_logging(debug):
    """
    Log debug messages of the app while debug mode is on, and restore the configured level when it is off.
    """
    logger = logging.getLogger('lti_platform')
    if debug:
        _configured_level.setdefault('level', logger.level)
        logger.setLevel(logging.DEBUG)
    elif 'level' in _configured_level:
        logger.setLevel(_configured_level.pop('level'))


@define
class PlatformSettings:
    """
    Snapshot of the platform options and the site identification used in LTI messages.
    """
    options = field(factory=dict)
    site_id = field(default=1)
    site_url = field(default='')
    instance_name = field(default='')
    instance_description = field(default='')
    contact_email = field(default='')

    @classmethod
    def load(cls):
        """
        Merge the options stored in the database over the LTI_PLATFORM_OPTIONS setting.
        """
        options = dict(getattr(settings, 'LTI_PLATFORM_OPTIONS', {}) or {})
        options.update(PlatformConfiguration.current().options or {})
        platform_settings = cls(
            options=options,
            site_id=compat.get_current_site_id(),
            site_url=get_site_url(),
            instance_name=getattr(settings, 'LTI_PLATFORM_INSTANCE_NAME', getattr(settings, 'PLATFORM_NAME', '')),
            instance_description=getattr(settings, 'LTI_PLATFORM_INSTANCE_DESCRIPTION', ''),
            contact_email=getattr(settings, 'LTI_PLATFORM_CONTACT_EMAIL', getattr(settings, 'DEFAULT_FROM_EMAIL', '')),
        )
        _set_debug_logging(platform_settings.debug)
        return platform_settings

    def get_option(self, name, default=''):
        value = self.options.get(name)
        if value is None or value == '':
            return default
        return value

    def is_enabled(self, name):
        """
        Return whether a checkbox option is switched on.
        """
        return self.options.get(name) in ('true', True)

    @property
    def debug(self):
        return self.is_enabled('debug')

    @property
    def uninstall(self):
        return self.is_enabled('uninstall')

    @property
    def storage(self):
        return self.is_enabled('storage')

    @property
    def platform_guid(self):
        return self.get_option('platformguid')

    @property
    def kid(self):
        return self.get_option('kid')

    @property
    def private_key(self):
        return self.get_option('privatekey')

    def role_mapping(self, role):
        """
        Return the comma separated LTI role tokens configured for a site role.
        """
        return self.get_option(f'role_{role}', DEFAULT_ROLE_MAPPING.get(role, ''))

    def tool_defaults(self):
        """
        Settings applied to a newly created tool.
        """
        defaults = {}
        for option, setting in TOOL_DEFAULT_OPTIONS.items():
            value = self.get_option(option)
            if setting.startswith('send'):
                value = 'true' if value in ('true', True) else ''
            if value:
                defaults[setting] = str(value)
        return defaults

"""
LTI Platform storage models.
"""
import logging

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

log = logging.getLogger(__name__)


class ToolRecord(models.Model):
    """
    Document-per-tool storage for registered LTI Tools.

    Each record carries a title (the tool name), a slug (the tool code), a status and a flat
    JSON document of settings. Structured tool fields are kept in the document under reserved
    keys prefixed with a double underscore, see `lti_platform.dataconnector`.

    .. no_pii:
    """
    SCOPE_SITE = 'site'
    SCOPE_NETWORK = 'network'
    SCOPE_CHOICES = [
        (SCOPE_SITE, _('Site tool')),
        (SCOPE_NETWORK, _('Network tool (shared by all sites)')),
    ]

    STATUS_PUBLISH = 'publish'
    STATUS_DRAFT = 'draft'
    STATUS_TRASH = 'trash'
    STATUS_CHOICES = [
        (STATUS_PUBLISH, _('Enabled')),
        (STATUS_DRAFT, _('Disabled')),
        (STATUS_TRASH, _('Trash')),
    ]

    scope = models.CharField(
        max_length=10,
        choices=SCOPE_CHOICES,
        default=SCOPE_SITE,
    )
    site_id = models.PositiveIntegerField(
        default=1,
        db_index=True,
        help_text=_("Site owning the tool. Ignored for network tools."),
    )
    title = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Name of the tool."),
    )
    slug = models.CharField(
        max_length=200,
        db_index=True,
        help_text=_("Unique code of the tool, also used as the LTI 1.3 client ID."),
    )
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_DRAFT,
        db_index=True,
    )
    content = models.TextField(
        blank=True,
        default='{}',
        help_text=_("JSON encoded tool settings."),
    )
    created = models.DateTimeField(default=timezone.now)
    modified = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['slug']
        verbose_name = _('LTI tool')
        verbose_name_plural = _('LTI tools')

    def __str__(self):
        return f"{self.title} ({self.slug})"


class PlatformConfiguration(models.Model):
    """
    Platform-wide options of the LTI Platform, edited by administrators.

    A single row is used. Values stored here override the defaults from the
    LTI_PLATFORM_OPTIONS Django setting.

    .. no_pii:
    """
    options = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("Platform options: debug, uninstall, platformguid, privacy and presentation defaults, "
                    "role mapping defaults (role_<name>), kid, privatekey and storage."),
    )
    changed = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('LTI platform configuration')

    def __str__(self):
        return "LTI platform configuration"

    @classmethod
    def current(cls):
        """
        Return the platform configuration row, creating it when missing.
        """
        config, _created = cls.objects.get_or_create(pk=1)
        return config

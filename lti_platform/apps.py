"""
lti_platform Django application initialization.
"""

from django.apps import AppConfig


class LTIPlatformApp(AppConfig):
    """
    Configuration for the lti_platform Django application.
    """

    name = 'lti_platform'
    verbose_name = 'LTI Platform'
    default_auto_field = 'django.db.models.AutoField'

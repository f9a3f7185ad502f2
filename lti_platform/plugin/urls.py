"""
URL mappings for LTI Platform plugin.
"""

from django.urls import path

from lti_platform.plugin.views import lti_platform_endpoint

app_name = 'lti_platform'
urlpatterns = [
    path(
        'lti_platform/',
        lti_platform_endpoint,
        name='lti_platform.endpoint'
    ),
]

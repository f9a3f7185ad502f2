"""
Template tags for rendering content with embedded LTI links.
"""
import bleach

from django import template
from django.utils.safestring import mark_safe

from lti_platform.config import PlatformSettings
from lti_platform.shortcodes import parse_shortcodes, render_shortcodes, storage_script

register = template.Library()


@register.filter()
def lti_sanitize(html):
    """
    Sanitize a html fragment with bleach.
    """
    allowed_tags = bleach.sanitizer.ALLOWED_TAGS | {'img'}
    allowed_attributes = dict(bleach.sanitizer.ALLOWED_ATTRIBUTES, **{'img': ['src', 'alt']})
    sanitized_html = bleach.clean(html, tags=allowed_tags, attributes=allowed_attributes)
    return mark_safe(sanitized_html)


@register.simple_tag
def lti_platform_content(post):
    """
    Replace the LTI link shortcodes in the content of a post with their HTML.

    The post is an object with `id` and `content` attributes; its content is trusted HTML. When
    platform storage is offered, content with links also loads the storage helper.
    """
    platform_settings = PlatformSettings.load()
    html = render_shortcodes(post.content, post.id, platform_settings)
    if parse_shortcodes(post.content):
        html = str(storage_script(platform_settings)) + html
    return mark_safe(html)

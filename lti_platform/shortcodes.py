"""
Embedded LTI links.

Links to tools are stored inline in page content as shortcodes:

    [lti-platform tool=quiz id=3f2a9c1b title="Week 1 quiz" target=iframe]Take the quiz[/lti-platform]

Attribute values containing white space, quotes or a closing bracket are written in
double quotes; backslashes and double quotes inside values are escaped with a backslash.
"""
import logging
import re

import bleach
from attrs import define, field
from django.utils.html import format_html
from django.utils.safestring import mark_safe

from .api import find_tool
from .data import PRESENTATION_TARGETS, LinkAttributes
from .utils import _, escape_custom_value, get_platform_endpoint_url

log = logging.getLogger(__name__)

SHORTCODE_TAG = 'lti-platform'

OPEN_TAG_RE = re.compile(r'\[' + re.escape(SHORTCODE_TAG) + r'(?=[\s\]/])')
CLOSE_TAG = f'[/{SHORTCODE_TAG}]'
ATTRIBUTE_RE = re.compile(
    r'''\s*(?:
        (?P<name>[\w-]+)\s*=\s*(?:
            "(?P<double>(?:[^"\\]|\\.)*)"
            |'(?P<single>[^']*)'
            |(?P<bare>(?:[^\s\]"'\\]|\\.)+)
        )
        |"(?P<positional>(?:[^"\\]|\\.)*)"
        |(?P<word>[^\s\]/"'=]+)
    )''',
    re.VERBOSE | re.DOTALL,
)
UNESCAPE_RE = re.compile(r'\\([\\"])')

LINK_TEXT_TAGS = {'b', 'strong', 'em', 'i', 'span', 'img', 'code', 'abbr'}
LINK_TEXT_ATTRIBUTES = {'img': ['src', 'alt'], 'span': ['class'], 'abbr': ['title']}


@define
class Shortcode:
    """
    A shortcode found in content: its attributes, enclosed text and position.
    """
    attrs = field(factory=dict)
    text = field(default='')
    start = field(default=0)
    end = field(default=0)


def _unescape(value):
    return UNESCAPE_RE.sub(r'\1', value)


def _parse_attributes(content, position):
    """
    Parse attributes from `position` up to the end of the opening tag.

    Returns:
        (dict, int, bool): the attributes, the position after the tag and whether the tag is self-closing,
        or None if the tag is not terminated
    """
    attrs = {}
    length = len(content)
    while position < length:
        while position < length and content[position].isspace():
            position += 1
        if content.startswith('/]', position):
            return attrs, position + 2, True
        if content.startswith(']', position):
            return attrs, position + 1, False
        match = ATTRIBUTE_RE.match(content, position)
        if not match or match.end() == position:
            # Skip a character which cannot start an attribute
            position += 1
            continue
        position = match.end()
        if match.group('name'):
            if match.group('double') is not None:
                value = _unescape(match.group('double'))
            elif match.group('single') is not None:
                value = match.group('single')
            else:
                value = _unescape(match.group('bare'))
            attrs[match.group('name').lower()] = value
    return None


def parse_shortcodes(content):
    """
    Return the LTI link shortcodes found in content, in order.
    """
    shortcodes = []
    content = content or ''
    position = 0
    while True:
        match = OPEN_TAG_RE.search(content, position)
        if not match:
            break
        parsed = _parse_attributes(content, match.end())
        if parsed is None:
            break
        attrs, tag_end, self_closing = parsed
        text = ''
        end = tag_end
        if not self_closing:
            close = content.find(CLOSE_TAG, tag_end)
            next_open = OPEN_TAG_RE.search(content, tag_end)
            if close >= 0 and (next_open is None or close < next_open.start()):
                text = content[tag_end:close]
                end = close + len(CLOSE_TAG)
        shortcodes.append(Shortcode(attrs=attrs, text=text, start=match.start(), end=end))
        position = end
    return shortcodes


def get_link_attributes(content, link_id):
    """
    Return the attributes of the link with the given id, or None if there is no such link.

    When more than one link uses the id, the attributes of the first one are returned without an id.
    """
    link = None
    for shortcode in parse_shortcodes(content):
        if not shortcode.attrs.get('id') or shortcode.attrs['id'] != link_id:
            continue
        if link is None:
            attrs = {name: value.replace('&amp;', '&') for name, value in shortcode.attrs.items()}
            link = LinkAttributes.from_dict(attrs, text=shortcode.text)
        else:
            log.info("Link id %s is used more than once", link_id)
            link.id = ''
            break
    return link


def format_attribute(name, value):
    """
    Return `name=value` for a shortcode, quoting and escaping the value as needed.

    A dict value (such as custom parameters returned by a tool) is flattened to `key=value;key=value`.
    """
    if isinstance(value, dict):
        value = ';'.join(f'{key}={escape_custom_value(val)}' for key, val in value.items())
    value = '' if value is None else str(value)
    if value == '':
        return ''
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    if any(char.isspace() or char in '"\']' for char in value):
        return f'{name}="{escaped}"'
    return f'{name}={escaped}'


def build_shortcode(attrs, text=''):
    """
    Return the shortcode for a link.

    Arguments:
        attrs (LinkAttributes or dict): link attributes, written in order
        text (str): link text
    """
    if isinstance(attrs, LinkAttributes):
        attrs = attrs.to_dict()
    parts = [format_attribute(name, value) for name, value in attrs.items()]
    attributes = ' '.join(part for part in parts if part)
    opening = f'[{SHORTCODE_TAG} {attributes}]' if attributes else f'[{SHORTCODE_TAG}]'
    return f'{opening}{text or ""}{CLOSE_TAG}'


def _dimension(value):
    """
    Return the leading integer of a size value, as a string, or '' when there is none.
    """
    match = re.match(r'\s*(\d+)', str(value or ''))
    return match.group(1) if match else ''


def _css_size(value):
    return f'{value}px' if value.isdigit() else value


def sanitize_link_text(text):
    """
    Sanitize the HTML of a link text with bleach.
    """
    return bleach.clean(text, tags=LINK_TEXT_TAGS, attributes=LINK_TEXT_ATTRIBUTES, strip=True)


def _error(message):
    return format_html('<strong>{}</strong>', message)


def render_link(link, post_id, platform_settings, connector=None):
    """
    Render an embedded link as HTML.

    A link which cannot be rendered is replaced by a bold error message so the rest of the page is unaffected.
    """
    missing = [name for name in ('tool', 'id') if not getattr(link, name)]
    if missing:
        return _error(_('Missing attribute(s): ') + ', '.join(missing))

    tool = find_tool(link.tool, platform_settings, connector)
    if tool is None:
        return _error(_('Tool parameter not recognised: ') + link.tool)
    if not tool.enabled:
        return _error(_('LTI Tool is not available'))

    target = link.target or tool.get_setting('presentationTarget') or 'window'
    if target not in PRESENTATION_TARGETS:
        return _error(_('Invalid presentation target: ') + target)

    text = mark_safe(sanitize_link_text(link.text)) if link.text else link.tool
    url = get_platform_endpoint_url(post=post_id, id=link.id)
    width = _dimension(link.width) or tool.get_setting('presentationWidth')
    height = _dimension(link.height) or tool.get_setting('presentationHeight')

    if target == 'window':
        return format_html(
            '<a href="{}" title="{}" target="_blank" class="{}" style="{}">{}</a>',
            url, _('Launch {} tool').format(link.tool), link.css_class, link.style, text,
        )
    if target == 'popup':
        size = f'width={width or 800},height={height or 500}'
        return format_html(
            '<a href="#" title="{}" class="{}" style="{}" onclick="window.open(\'{}\', \'\', \'{}\'); return false;">{}</a>',
            _('Launch {} tool').format(link.tool), link.css_class, link.style, url, size, text,
        )
    if target == 'iframe':
        return format_html(
            '<a href="{}" title="{}" class="{}" style="{}">{}</a>',
            f'{url}&embed', _('Embed {} tool').format(link.tool), link.css_class, link.style, text,
        )
    if target == 'embed':
        size = f'width: {_css_size(width or "100%")}; height: {_css_size(height or "400px")};'
        return format_html(
            '<div class="lti-platform-embed"><iframe style="border: none; {} {}" class="{}" src="{}" '
            'title="{}" allowfullscreen></iframe></div>',
            size, link.style, link.css_class, url, link.title or link.tool,
        )
    # urlonly
    return format_html('{}', url)


def storage_script(platform_settings):
    """
    Return the script tag loading the platform storage helper, or an empty string when storage is off.
    """
    if not platform_settings.storage:
        return ''
    return format_html('<script src="{}"></script>', get_platform_endpoint_url('storagejs'))


def render_shortcodes(content, post_id, platform_settings, connector=None):
    """
    Replace the LTI link shortcodes in content with their HTML.
    """
    content = content or ''
    rendered = []
    position = 0
    for shortcode in parse_shortcodes(content):
        rendered.append(content[position:shortcode.start])
        link = LinkAttributes.from_dict(shortcode.attrs, text=shortcode.text)
        rendered.append(str(render_link(link, post_id, platform_settings, connector)))
        position = shortcode.end
    rendered.append(content[position:])
    return ''.join(rendered)

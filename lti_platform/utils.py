"""
Utility functions for the LTI Platform
"""
import logging
import re
import secrets
from urllib.parse import urlencode

from django.conf import settings
from django.urls import reverse

log = logging.getLogger(__name__)

# Characters which may be escaped with a backslash inside custom parameter values.
CUSTOM_ESCAPED_CHARACTERS = (';', '"', '\\')
CUSTOM_DELIMITERS = (';', '\r', '\n')


def _(text):
    """
    Make '_' a no-op so we can scrape strings
    """
    return text


def get_site_url():
    """
    Returns the base url of this site, used as the LTI 1.3 issuer and to build the
    URLs sent to tools. Set LTI_PLATFORM_SITE_URL to override the SITE_URL setting,
    for example when running behind a proxy such as ngrok.
    """
    if hasattr(settings, 'LTI_PLATFORM_SITE_URL'):
        return settings.LTI_PLATFORM_SITE_URL.rstrip('/')
    return getattr(settings, 'SITE_URL', '').rstrip('/')


def get_platform_endpoint_url(*flags, **params):
    """
    Returns the absolute URL of the platform endpoint with the given sub-action flags and parameters.

    Flags are sent as valueless query parameters, e.g. `?content&tool=code`.
    """
    url = get_site_url() + reverse('lti_platform:lti_platform.endpoint')
    query = '&'.join(flags)
    if params:
        encoded = urlencode(params)
        query = f'{query}&{encoded}' if query else encoded
    if query:
        url += '?' + query
    return url


def generate_link_id():
    """
    Return a random identifier for a new embedded link.
    """
    return secrets.token_hex(4)


def split_custom_parameters(text):
    """
    Split a list of custom parameters into `name=value` pairs.

    Pairs are separated by semi-colons or line breaks. A backslash escapes a following
    semi-colon, double quote or backslash, which is then kept as a literal character.
    """
    pairs = []
    current = []
    position = 0
    while position < len(text):
        char = text[position]
        if char == '\\' and position + 1 < len(text) and text[position + 1] in CUSTOM_ESCAPED_CHARACTERS:
            current.append(text[position + 1])
            position += 2
            continue
        if char in CUSTOM_DELIMITERS:
            pairs.append(''.join(current))
            current = []
        else:
            current.append(char)
        position += 1
    pairs.append(''.join(current))

    return [pair for pair in pairs if pair.strip()]


def normalize_custom_name(name):
    """
    Lower-case a custom parameter name and replace anything but letters and digits with underscores.
    """
    return re.sub(r'[^a-z0-9]', '_', name.strip().lower())


def parse_custom_parameters(text, include_original_names=False):
    """
    Parse custom parameters into LTI `custom_` message parameters.

    Arguments:
        text (str): Semi-colon or line break separated list of `name=value` pairs
        include_original_names (bool): Also send the parameter under its original name when it differs
            from the normalized one (used for LTI 1.3 messages)

    Returns:
        dict: Message parameters keyed by `custom_<name>`
    """
    params = {}
    for pair in split_custom_parameters(text or ''):
        name, separator, value = pair.partition('=')
        if not separator:
            log.debug("Ignoring custom parameter without a value: %r", pair)
            continue
        normalized = normalize_custom_name(name)
        if not normalized:
            continue
        value = value.strip()
        params[f'custom_{normalized}'] = value
        original = name.strip()
        if include_original_names and original != normalized:
            params[f'custom_{original}'] = value

    return params


def escape_custom_value(value):
    """
    Escape a custom parameter value so that it survives `split_custom_parameters`.
    """
    return str(value).replace('\\', '\\\\').replace(';', '\\;')

"""
This module provides the data structures shared by the LTI Platform: the registered Tools, the
attributes of an embedded link, and the context and user of a launch.
"""

from attrs import define, field

TOOL_SCOPE_SITE = 'site'
TOOL_SCOPE_NETWORK = 'network'

PRESENTATION_TARGETS = ['window', 'popup', 'iframe', 'embed', 'urlonly']


@define
class Tool:
    """
    An external LTI application registered with this platform.

    * record_id: Identifier assigned by the persistence layer; None until the tool is first saved.
    * site_id: Site the tool belongs to; network tools are shared between all sites.
    * scope: Either "site" or "network".
    * code: Unique, lower-cased slug. It is also used as the LTI 1.3 client_id.
    * name: Human readable name.
    * enabled / deleted / debug_mode: Lifecycle flags.
    * message_url: LTI launch endpoint.
    * use_content_item / content_item_url: Deep linking support and its endpoint (defaults to message_url).
    * key / secret: LTI 1.0/1.1/1.2 OAuth consumer key and shared secret (HMAC-SHA1).
    * initiate_login_url / redirection_uris / jku / rsa_key: LTI 1.3 configuration (RS256).
    * settings: Free form string settings (privacy toggles, presentation, custom parameters, role mapping).
    * created / updated: Save timestamps.
    * last_access: Day (as a UTC midnight datetime) of the last launch.
    """
    record_id = field(default=None)
    site_id = field(default=None)
    scope = field(default=TOOL_SCOPE_SITE)
    code = field(default='')
    name = field(default='')
    enabled = field(default=False)
    deleted = field(default=False)
    debug_mode = field(default=False)
    message_url = field(default='')
    use_content_item = field(default=False)
    content_item_url = field(default='')
    key = field(default='')
    secret = field(default='')
    initiate_login_url = field(default='')
    redirection_uris = field(factory=list)
    jku = field(default='')
    rsa_key = field(default='')
    settings = field(factory=dict)
    created = field(default=None)
    updated = field(default=None)
    last_access = field(default=None)

    @property
    def deep_linking_url(self):
        """
        Endpoint used for deep linking (content-item) requests.
        """
        return self.content_item_url or self.message_url

    def get_setting(self, name, default=''):
        return self.settings.get(name, default)

    def set_setting(self, name, value=None):
        """
        Set a setting value; an empty value removes the setting.
        """
        if value is None or value == '':
            self.settings.pop(name, None)
        else:
            self.settings[name] = str(value)

    def get_bool_setting(self, name):
        return self.settings.get(name) == 'true'


@define
class LinkAttributes:
    """
    Attributes of a link embedded in content with the `lti-platform` shortcode.
    """
    tool = field(default='')
    id = field(default='')
    custom = field(default='')
    target = field(default='')
    width = field(default='')
    height = field(default='')
    title = field(default='')
    url = field(default='')
    css_class = field(default='')
    style = field(default='')
    text = field(default='')

    @classmethod
    def from_dict(cls, attrs, text=''):
        """
        Build link attributes from a parsed shortcode attribute dictionary.
        """
        return cls(
            tool=attrs.get('tool', ''),
            id=attrs.get('id', ''),
            custom=attrs.get('custom', ''),
            target=attrs.get('target', ''),
            width=attrs.get('width', ''),
            height=attrs.get('height', ''),
            title=attrs.get('title', ''),
            url=attrs.get('url', ''),
            css_class=attrs.get('class', ''),
            style=attrs.get('style', ''),
            text=text or '',
        )

    def to_dict(self):
        """
        Return the non-empty attributes in shortcode order.
        """
        values = [
            ('tool', self.tool),
            ('id', self.id),
            ('title', self.title),
            ('url', self.url),
            ('target', self.target),
            ('width', self.width),
            ('height', self.height),
            ('class', self.css_class),
            ('style', self.style),
            ('custom', self.custom),
        ]
        return {name: str(value) for name, value in values if value not in (None, '')}


@define
class LaunchContext:
    """
    The content (page or post) a link is embedded in.
    """
    post_id = field()
    title = field(default='')


@define
class LaunchUser:
    """
    The user performing the launch.
    """
    user_id = field()
    display_name = field(default='')
    first_name = field(default='')
    last_name = field(default='')
    email = field(default='')
    username = field(default='')
    roles = field(factory=list)


@define
class LoginState:
    """
    State saved when an LTI 1.3 third party initiated login is started, and consumed when the
    tool returns the authentication request.
    """
    message_url = field()
    login_hint = field()
    params = field(factory=dict)
    lti_message_hint = field(default=None)
    tool_code = field(default=None)

"""
Tests for embedded link shortcodes
"""
import ddt
from django.test.testcases import TestCase

from lti_platform import api
from lti_platform.data import LinkAttributes
from lti_platform.shortcodes import (
    build_shortcode,
    format_attribute,
    get_link_attributes,
    parse_shortcodes,
    render_link,
    render_shortcodes,
    sanitize_link_text,
)
from lti_platform.tests.test_utils import make_platform_settings, make_tool

LAUNCH_URL = 'https://example.com/lti_platform/?post=5&amp;id=ab12'


class TestParseShortcodes(TestCase):
    """
    Unit tests for parse_shortcodes
    """

    def test_enclosing_shortcode(self):
        content = 'Before [lti-platform tool=quiz id=ab12 title="Week 1 quiz" target=iframe]Take it[/lti-platform] after'

        shortcodes = parse_shortcodes(content)

        self.assertEqual(len(shortcodes), 1)
        shortcode = shortcodes[0]
        self.assertEqual(shortcode.attrs, {'tool': 'quiz', 'id': 'ab12', 'title': 'Week 1 quiz', 'target': 'iframe'})
        self.assertEqual(shortcode.text, 'Take it')
        self.assertEqual(content[shortcode.start:shortcode.end],
                         '[lti-platform tool=quiz id=ab12 title="Week 1 quiz" target=iframe]Take it[/lti-platform]')

    def test_self_closing_and_quoting(self):
        content = "[lti-platform tool=quiz id='x y' title=\"Say \\\"hi\\\"\" /][lti-platform tool=video id=2]"

        shortcodes = parse_shortcodes(content)

        self.assertEqual([shortcode.attrs for shortcode in shortcodes], [
            {'tool': 'quiz', 'id': 'x y', 'title': 'Say "hi"'},
            {'tool': 'video', 'id': '2'},
        ])
        self.assertEqual([shortcode.text for shortcode in shortcodes], ['', ''])

    def test_attribute_names_are_lower_cased(self):
        shortcode = parse_shortcodes('[lti-platform Tool=quiz ID=1][/lti-platform]')[0]

        self.assertEqual(shortcode.attrs, {'tool': 'quiz', 'id': '1'})

    def test_other_shortcodes_are_ignored(self):
        self.assertEqual(parse_shortcodes('[lti-platformx tool=a] [caption]x[/caption]'), [])

    def test_unterminated_shortcode(self):
        self.assertEqual(parse_shortcodes('[lti-platform tool=quiz id=1'), [])


class TestGetLinkAttributes(TestCase):
    """
    Unit tests for get_link_attributes
    """

    def test_link_found(self):
        content = (
            '[lti-platform tool=quiz id=one]First[/lti-platform]'
            '[lti-platform tool=video id=two url="/item?a=1&amp;b=2" class=big custom="a=1;b=2"]Second[/lti-platform]'
        )

        link = get_link_attributes(content, 'two')

        self.assertEqual(link, LinkAttributes(
            tool='video', id='two', url='/item?a=1&b=2', css_class='big', custom='a=1;b=2', text='Second',
        ))

    def test_link_not_found(self):
        self.assertIsNone(get_link_attributes('[lti-platform tool=quiz id=one][/lti-platform]', 'two'))
        self.assertIsNone(get_link_attributes('', 'two'))

    def test_duplicate_id(self):
        content = '[lti-platform tool=quiz id=one]A[/lti-platform][lti-platform tool=video id=one]B[/lti-platform]'

        link = get_link_attributes(content, 'one')

        self.assertEqual(link.tool, 'quiz')
        self.assertEqual(link.id, '')


@ddt.ddt
class TestBuildShortcode(TestCase):
    """
    Unit tests for format_attribute and build_shortcode
    """

    @ddt.data(
        ('quiz', 'tool=quiz'),
        ('Week 1', 'title="Week 1"'),
        ('say "hi"', 'title="say \\"hi\\""'),
        ('a]b', 'title="a]b"'),
        ('back\\slash', 'title=back\\\\slash'),
        ('', ''),
        (None, ''),
    )
    @ddt.unpack
    def test_format_attribute(self, value, expected):
        name = 'tool' if value == 'quiz' else 'title'
        self.assertEqual(format_attribute(name, value), expected)

    def test_format_custom_dict(self):
        self.assertEqual(format_attribute('custom', {'a': '1', 'b': 'x;y'}), 'custom=a=1;b=x\\\\;y')

    def test_build_from_link(self):
        link = LinkAttributes(tool='quiz', id='ab12', title='Week 1', target='iframe', width='600')

        shortcode = build_shortcode(link, 'Take the quiz')

        self.assertEqual(
            shortcode,
            '[lti-platform tool=quiz id=ab12 title="Week 1" target=iframe width=600]Take the quiz[/lti-platform]',
        )

    def test_built_shortcode_is_parsed_back(self):
        link = LinkAttributes(tool='quiz', id='ab12', title='Say "hi" ] now', custom='a=1;b=two words')

        parsed = parse_shortcodes(build_shortcode(link, 'Go'))[0]

        self.assertEqual(LinkAttributes.from_dict(parsed.attrs, text=parsed.text), LinkAttributes(
            tool='quiz', id='ab12', title='Say "hi" ] now', custom='a=1;b=two words', text='Go',
        ))

    def test_build_without_attributes(self):
        self.assertEqual(build_shortcode({}), '[lti-platform][/lti-platform]')


@ddt.ddt
class TestRenderLink(TestCase):
    """
    Unit tests for render_link and render_shortcodes
    """

    def setUp(self):
        super().setUp()
        self.platform_settings = make_platform_settings()
        api.save_tool(make_tool(), self.platform_settings)

    def _render(self, **attributes):
        values = {'tool': 'quiz', 'id': 'ab12', 'text': 'Take the quiz'}
        values.update(attributes)
        return str(render_link(LinkAttributes(**values), 5, self.platform_settings))

    def test_window(self):
        html = self._render()

        self.assertIn(f'href="{LAUNCH_URL}"', html)
        self.assertIn('target="_blank"', html)
        self.assertIn('>Take the quiz</a>', html)

    def test_popup(self):
        html = self._render(target='popup', width='640')

        self.assertIn('href="#"', html)
        self.assertIn(LAUNCH_URL, html)
        self.assertIn('width=640,height=500', html)

    def test_iframe(self):
        html = self._render(target='iframe')

        self.assertIn(f'href="{LAUNCH_URL}&amp;embed"', html)

    @ddt.data(
        ({}, 'width: 100%; height: 400px;'),
        ({'width': '600', 'height': '300px'}, 'width: 600px; height: 300px;'),
    )
    @ddt.unpack
    def test_embed(self, size, expected_style):
        html = self._render(target='embed', **size)

        self.assertIn('<iframe', html)
        self.assertIn(f'src="{LAUNCH_URL}"', html)
        self.assertIn(expected_style, html)

    def test_urlonly(self):
        self.assertEqual(self._render(target='urlonly'), LAUNCH_URL)

    def test_tool_default_target(self):
        tool = api.find_tool('quiz', self.platform_settings)
        tool.set_setting('presentationTarget', 'iframe')
        api.save_tool(tool, self.platform_settings)

        self.assertIn('&amp;embed', self._render())

    def test_link_text_is_sanitized(self):
        html = self._render(text='<script>alert(1)</script><b>Go</b>')

        self.assertNotIn('<script>', html)
        self.assertIn('<b>Go</b>', html)

    def test_link_text_defaults_to_tool_code(self):
        self.assertIn('>quiz</a>', self._render(text=''))

    @ddt.data(
        ({'tool': '', 'id': ''}, 'Missing attribute(s): tool, id'),
        ({'id': ''}, 'Missing attribute(s): id'),
        ({'tool': 'nope'}, 'Tool parameter not recognised: nope'),
        ({'target': 'sideways'}, 'Invalid presentation target: sideways'),
    )
    @ddt.unpack
    def test_errors(self, attributes, message):
        self.assertEqual(self._render(**attributes), f'<strong>{message}</strong>')

    def test_disabled_tool(self):
        api.save_tool(make_tool(code='off', enabled=False), self.platform_settings)

        self.assertEqual(self._render(tool='off'), '<strong>LTI Tool is not available</strong>')

    def test_render_shortcodes(self):
        content = '<p>Intro</p>[lti-platform tool=quiz id=ab12 target=urlonly]x[/lti-platform]<p>End</p>'

        self.assertEqual(
            render_shortcodes(content, 5, self.platform_settings),
            f'<p>Intro</p>{LAUNCH_URL}<p>End</p>',
        )

    def test_sanitize_link_text(self):
        self.assertEqual(sanitize_link_text('<i onclick="x()">Go</i>'), '<i>Go</i>')

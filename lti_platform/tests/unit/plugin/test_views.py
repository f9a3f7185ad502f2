"""
Tests for the LTI Platform endpoint views.
"""
import json
from urllib.parse import parse_qs, urlparse

import ddt
import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test.testcases import TestCase
from edx_django_utils.cache import RequestCache

from lti_platform import api
from lti_platform.lti_1p1.consumer import LtiConsumer1p1
from lti_platform.models import PlatformConfiguration
from lti_platform.tests.test_utils import (
    PLATFORM_KID,
    PLATFORM_PRIVATE_KEY,
    PLATFORM_RSA_KEY,
    SITE_URL,
    TEST_POSTS,
    add_test_post,
    make_lti_1p3_platform_settings,
    make_lti_1p3_tool,
    make_platform_settings,
    make_tool,
)

ENDPOINT = '/lti_platform/'


def _set_platform_options(**options):
    PlatformConfiguration.objects.update_or_create(pk=1, defaults={'options': options})


class PlatformViewTestCase(TestCase):
    """
    Base class for the endpoint view tests.
    """

    def setUp(self):
        super().setUp()
        cache.clear()
        RequestCache.clear_all_namespaces()
        TEST_POSTS.clear()
        self.staff_user = get_user_model().objects.create_user(
            'editor', 'editor@example.com', 'password', is_staff=True, first_name='Ed', last_name='Itor',
        )

    def _save_tool(self, tool, platform_settings=None):
        api.save_tool(tool, platform_settings or make_platform_settings())
        return tool


class TestEndpointDispatch(PlatformViewTestCase):
    """
    Test the dispatch of the endpoint on its query flags.
    """

    def test_no_flag(self):
        self.assertEqual(self.client.get(ENDPOINT).status_code, 404)

    def test_unknown_flag(self):
        self.assertEqual(self.client.get(ENDPOINT, {'unknown': ''}).status_code, 404)

    def test_method_not_allowed(self):
        self.assertEqual(self.client.put(ENDPOINT + '?keys').status_code, 405)

    def test_can_be_framed(self):
        response = self.client.get(ENDPOINT + '?keys')

        self.assertNotIn('X-Frame-Options', response)


class TestToolsList(PlatformViewTestCase):
    """
    Test the `tools` sub-action.
    """

    def test_staff_user(self):
        self._save_tool(make_tool(code='quiz', name='Quiz tool'))
        self._save_tool(make_tool(code='draft', name='Draft tool', enabled=False))
        self.client.force_login(self.staff_user)

        response = self.client.get(ENDPOINT + '?tools')

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Quiz tool')
        self.assertNotContains(response, 'Draft tool')

    def test_no_tools(self):
        self.client.force_login(self.staff_user)

        response = self.client.get(ENDPOINT + '?tools')

        self.assertContains(response, 'There are no enabled LTI tools defined.')

    def test_not_allowed(self):
        user = get_user_model().objects.create_user('reader', 'reader@example.com', 'password')
        self.client.force_login(user)

        self.assertEqual(self.client.get(ENDPOINT + '?tools').status_code, 403)

    def test_anonymous(self):
        self.assertEqual(self.client.get(ENDPOINT + '?tools').status_code, 403)


@ddt.ddt
class TestUseContentItem(PlatformViewTestCase):
    """
    Test the `usecontentitem` sub-action.
    """

    @ddt.data(
        ('quiz', True),
        ('video', False),
        ('unknown', False),
    )
    @ddt.unpack
    def test_use_content_item(self, code, expected):
        self._save_tool(make_tool(code='quiz', use_content_item=True))
        self._save_tool(make_tool(code='video'))

        response = self.client.get(ENDPOINT, {'usecontentitem': '', 'tool': code})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.content.decode('utf-8')), {'useContentItem': expected})


class TestPublicKeyset(PlatformViewTestCase):
    """
    Test the `keys` sub-action.
    """

    def test_keyset(self):
        _set_platform_options(kid=PLATFORM_KID, privatekey=PLATFORM_PRIVATE_KEY)

        response = self.client.get(ENDPOINT + '?keys')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-type'], 'application/json')
        self.assertEqual(response['Content-Disposition'], 'attachment; filename=keyset.json')
        keyset = json.loads(response.content.decode('utf-8'))
        self.assertEqual([key['kid'] for key in keyset['keys']], [PLATFORM_KID])

    def test_no_key(self):
        response = self.client.get(ENDPOINT + '?keys')

        self.assertEqual(json.loads(response.content.decode('utf-8')), {'keys': []})


class TestStorageJs(PlatformViewTestCase):
    """
    Test the `storagejs` sub-action.
    """

    def test_storage_disabled(self):
        self.assertEqual(self.client.get(ENDPOINT + '?storagejs').status_code, 404)

    def test_storage_enabled(self):
        _set_platform_options(storage='true')

        response = self.client.get(ENDPOINT + '?storagejs')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-type'], 'application/javascript')
        self.assertContains(response, 'lti.put_data')


class TestLti1p1Launch(PlatformViewTestCase):
    """
    Test the launch of a link to an LTI 1.0/1.1 tool.
    """

    def setUp(self):
        super().setUp()
        self.tool = self._save_tool(make_tool(settings={'sendUserId': 'true', 'sendUserName': 'true'}))
        add_test_post(5, '<p>[lti-platform tool=quiz id=ab12 title="Week 1"]Go[/lti-platform]</p>', title='Week 1')

    def test_launch(self):
        self.client.force_login(self.staff_user)

        response = self.client.get(ENDPOINT, {'post': '5', 'id': 'ab12'})

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'html/lti_launch.html')
        self.assertEqual(response.context['launch_url'], 'https://tool.example/launch')
        launch_params = dict(response.context['launch_params'])
        self.assertEqual(launch_params['resource_link_id'], '5-ab12')
        self.assertEqual(launch_params['resource_link_title'], 'Week 1')
        self.assertEqual(launch_params['user_id'], str(self.staff_user.pk))
        self.assertEqual(launch_params['lis_person_name_full'], 'Ed Itor')
        self.assertEqual(launch_params['oauth_consumer_key'], 'tool-key')
        self.assertEqual(launch_params['oauth_signature_method'], 'HMAC-SHA1')
        self.assertIn('oauth_signature', launch_params)

    def test_launch_records_access(self):
        self.client.get(ENDPOINT, {'post': '5', 'id': 'ab12'})

        self.assertIsNotNone(api.get_tool(self.tool.record_id).last_access)

    def test_anonymous_launch(self):
        response = self.client.get(ENDPOINT, {'post': '5', 'id': 'ab12'})

        self.assertEqual(response.status_code, 200)
        self.assertNotIn('user_id', dict(response.context['launch_params']))

    def test_deep_linking_request(self):
        self._save_tool(make_tool(
            code='picker', use_content_item=True, content_item_url='https://tool.example/select',
        ))

        response = self.client.get(ENDPOINT, {'deeplink': '', 'post': '5', 'tool': 'picker'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['launch_url'], 'https://tool.example/select')
        launch_params = dict(response.context['launch_params'])
        self.assertEqual(launch_params['lti_message_type'], 'ContentItemSelectionRequest')
        self.assertEqual(launch_params['content_item_return_url'], f'{SITE_URL}/lti_platform/?content&tool=picker')


@ddt.ddt
class TestLaunchErrors(PlatformViewTestCase):
    """
    Test the error page shown when a link cannot be launched.
    """

    def setUp(self):
        super().setUp()
        add_test_post(5, '[lti-platform tool=quiz id=ab12]Go[/lti-platform]')

    @ddt.data(
        ({'post': '99', 'id': 'ab12'}, 'Missing or invalid post attribute in link'),
        ({'post': 'x', 'id': 'ab12'}, 'Missing or invalid post attribute in link'),
        ({'post': '5'}, 'Missing id attribute in link'),
        ({'post': '5', 'id': 'other'}, 'No tool specified'),
        ({'post': '5', 'id': 'ab12'}, 'Tool not found'),
    )
    @ddt.unpack
    def test_reason_hidden(self, params, reason):
        response = self.client.get(ENDPOINT, params)

        self.assertEqual(response.status_code, 400)
        self.assertContains(response, 'Sorry, the LTI tool could not be launched.', status_code=400)
        self.assertNotContains(response, reason, status_code=400)

    def test_reason_shown_in_platform_debug_mode(self):
        _set_platform_options(debug='true')

        response = self.client.get(ENDPOINT, {'post': '5', 'id': 'ab12'})

        self.assertContains(response, '<em>[Tool not found]</em>', status_code=400)

    def test_reason_shown_in_tool_debug_mode(self):
        self._save_tool(make_tool(enabled=False, debug_mode=True))

        response = self.client.get(ENDPOINT, {'post': '5', 'id': 'ab12'})

        self.assertContains(response, '<em>[Tool is not enabled]</em>', status_code=400)


class TestEmbed(PlatformViewTestCase):
    """
    Test the `embed` sub-action.
    """

    def setUp(self):
        super().setUp()
        self._save_tool(make_tool(settings={'presentationHeight': '300'}))
        add_test_post(5, '[lti-platform tool=quiz id=ab12 target=iframe width=640]Go[/lti-platform]', title='Week 1')

    def test_embed(self):
        response = self.client.get(ENDPOINT, {'embed': '', 'post': '5', 'id': 'ab12'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['launch_url'], f'{SITE_URL}/lti_platform/?post=5&id=ab12')
        self.assertEqual(response.context['title'], 'Week 1')
        self.assertContains(response, 'width: 640px; height: 300px;')
        self.assertNotContains(response, 'storagejs')

    def test_embed_loads_storage_helper(self):
        _set_platform_options(storage='true')

        response = self.client.get(ENDPOINT, {'embed': '', 'post': '5', 'id': 'ab12'})

        self.assertContains(response, f'<script src="{SITE_URL}/lti_platform/?storagejs"></script>')

    def test_embed_unknown_link(self):
        response = self.client.get(ENDPOINT, {'embed': '', 'post': '5', 'id': 'other'})

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.context['failed'])
        self.assertIsNone(response.context['reason'])


class TestContentItemResponse(PlatformViewTestCase):
    """
    Test the `content` sub-action receiving the link selected in an LTI 1.0/1.1 tool.
    """

    def setUp(self):
        super().setUp()
        self._save_tool(make_tool(use_content_item=True))
        self.content_items = json.dumps({
            '@context': 'http://purl.imsglobal.org/ctx/lti/v1/ContentItem',
            '@graph': [{'@type': 'LtiLinkItem', 'title': 'Week 1 quiz', 'url': 'https://tool.example/launch/1'}],
        })

    def _post(self, secret='tool-secret'):
        consumer = LtiConsumer1p1(f'{SITE_URL}{ENDPOINT}?content&tool=quiz', 'tool-key', secret)
        params = consumer.generate_launch_request(
            {'content_items': self.content_items, 'lti_version': 'LTI-1p0'},
            message_type='ContentItemSelection',
        )
        return self.client.post(ENDPOINT + '?content&tool=quiz', params)

    def test_valid_response(self):
        response = self._post()

        self.assertEqual(response.status_code, 200)
        shortcode = response.context['shortcode']
        self.assertTrue(shortcode.startswith('[lti-platform tool=quiz id='))
        self.assertIn('title="Week 1 quiz"', shortcode)
        self.assertIn('url=https://tool.example/launch/1', shortcode)
        self.assertTrue(shortcode.endswith(']Week 1 quiz[/lti-platform]'))

    def test_invalid_signature(self):
        response = self._post(secret='wrong')

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.context['shortcode'])
        self.assertIsNone(response.context['reason'])

    def test_invalid_signature_in_debug_mode(self):
        _set_platform_options(debug='true')

        response = self._post(secret='wrong')

        self.assertIsNone(response.context['shortcode'])
        self.assertIsNotNone(response.context['reason'])

    def test_unknown_tool(self):
        response = self.client.post(ENDPOINT + '?content&tool=unknown', {})

        self.assertIsNone(response.context['shortcode'])


class TestLti1p3Launch(PlatformViewTestCase):
    """
    Test the LTI 1.3 launch: login initiation followed by the tool's authentication request.
    """

    def setUp(self):
        super().setUp()
        _set_platform_options(kid=PLATFORM_KID, privatekey=PLATFORM_PRIVATE_KEY)
        self.tool = self._save_tool(
            make_lti_1p3_tool(settings={'sendUserId': 'true', 'sendUserName': 'true'}),
            make_lti_1p3_platform_settings(),
        )
        add_test_post(5, '[lti-platform tool=quiz id=ab12]Go[/lti-platform]', title='Week 1')
        self.client.force_login(self.staff_user)

    def _initiate_login(self):
        response = self.client.get(ENDPOINT, {'post': '5', 'id': 'ab12'})
        self.assertEqual(response.status_code, 302)
        preflight_url = urlparse(response['Location'])
        self.assertEqual(f'{preflight_url.scheme}://{preflight_url.netloc}{preflight_url.path}',
                         'https://tool.example/login')
        return {name: values[0] for name, values in parse_qs(preflight_url.query).items()}

    def _authentication_request(self, preflight_params, **overrides):
        params = {
            'auth': '',
            'response_type': 'id_token',
            'scope': 'openid',
            'client_id': preflight_params['client_id'],
            'redirect_uri': 'https://tool.example/launch',
            'login_hint': preflight_params['login_hint'],
            'lti_message_hint': preflight_params['lti_message_hint'],
            'nonce': 'tool-nonce',
            'state': 'tool-state',
        }
        params.update(overrides)
        return self.client.get(ENDPOINT, params)

    def test_login_initiation(self):
        preflight_params = self._initiate_login()

        self.assertEqual(preflight_params['iss'], SITE_URL)
        self.assertEqual(preflight_params['target_link_uri'], 'https://tool.example/launch')
        self.assertEqual(preflight_params['login_hint'], str(self.staff_user.pk))
        self.assertEqual(preflight_params['client_id'], 'quiz')
        self.assertEqual(preflight_params['lti_deployment_id'], '1')
        self.assertEqual(len(preflight_params['lti_message_hint']), 32)
        self.assertNotIn('lti_storage_target', preflight_params)

    def test_login_initiation_with_storage(self):
        _set_platform_options(kid=PLATFORM_KID, privatekey=PLATFORM_PRIVATE_KEY, storage='true')

        self.assertEqual(self._initiate_login()['lti_storage_target'], '_parent')

    def test_authentication_request(self):
        response = self._authentication_request(self._initiate_login())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['launch_url'], 'https://tool.example/launch')
        launch_params = dict(response.context['launch_params'])
        self.assertEqual(launch_params['state'], 'tool-state')
        public_key = PLATFORM_RSA_KEY.publickey().export_key('PEM').decode('utf-8')
        claims = jwt.decode(launch_params['id_token'], public_key, algorithms=['RS256'], audience='quiz')
        self.assertEqual(claims['iss'], SITE_URL)
        self.assertEqual(claims['nonce'], 'tool-nonce')
        self.assertEqual(claims['sub'], str(self.staff_user.pk))
        self.assertEqual(claims['name'], 'Ed Itor')
        self.assertEqual(
            claims['https://purl.imsglobal.org/spec/lti/claim/message_type'], 'LtiResourceLinkRequest',
        )
        self.assertEqual(
            claims['https://purl.imsglobal.org/spec/lti/claim/resource_link'], {'id': '5-ab12', 'title': 'Go'},
        )
        self.assertEqual(claims['https://purl.imsglobal.org/spec/lti/claim/roles'], [])

    def test_anonymous_login_hint(self):
        self.client.logout()

        preflight_params = self._initiate_login()

        session_key = self.client.cookies[settings.SESSION_COOKIE_NAME].value
        self.assertEqual(len(preflight_params['login_hint']), 32)
        self.assertNotIn(session_key, preflight_params['login_hint'])
        self.assertNotIn(session_key, preflight_params['lti_message_hint'])
        response = self._authentication_request(preflight_params)
        self.assertIn('id_token', dict(response.context['launch_params']))

    def test_missing_openid_scope(self):
        response = self._authentication_request(self._initiate_login(), scope='profile')

        self.assertEqual(dict(response.context['launch_params'])['error'], 'invalid_request')

    def test_login_state_is_used_once(self):
        preflight_params = self._initiate_login()
        self._authentication_request(preflight_params)

        response = self._authentication_request(preflight_params)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(dict(response.context['launch_params'])['error'], 'access_denied')
        self.assertEqual(dict(response.context['launch_params'])['state'], 'tool-state')

    def test_invalid_request(self):
        response = self._authentication_request(self._initiate_login(), nonce='')

        self.assertEqual(dict(response.context['launch_params'])['error'], 'invalid_request')

    def test_unsupported_response_type(self):
        response = self._authentication_request(self._initiate_login(), response_type='code')

        self.assertEqual(dict(response.context['launch_params'])['error'], 'unsupported_response_type')

    def test_wrong_message_hint(self):
        response = self._authentication_request(self._initiate_login(), lti_message_hint='other')

        self.assertEqual(dict(response.context['launch_params'])['error'], 'access_denied')

    def test_unregistered_redirect_uri(self):
        response = self._authentication_request(
            self._initiate_login(), redirect_uri='https://attacker.example/launch',
        )

        self.assertEqual(response.status_code, 400)
        self.assertTemplateUsed(response, 'html/lti_launch_error.html')

    def test_unknown_tool(self):
        response = self._authentication_request(self._initiate_login(), client_id='unknown')

        self.assertEqual(response.status_code, 400)

    def test_authentication_request_post(self):
        preflight_params = self._initiate_login()
        params = {
            'response_type': 'id_token',
            'scope': 'openid',
            'client_id': 'quiz',
            'redirect_uri': 'https://tool.example/launch',
            'login_hint': preflight_params['login_hint'],
            'lti_message_hint': preflight_params['lti_message_hint'],
            'nonce': 'tool-nonce',
        }

        response = self.client.post(ENDPOINT + '?auth', params)

        self.assertEqual(response.status_code, 200)
        self.assertIn('id_token', dict(response.context['launch_params']))

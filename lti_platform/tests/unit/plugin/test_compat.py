"""
Tests for the host site compatibility layer.
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Group
from django.test.testcases import TestCase
from django.test.utils import override_settings

from lti_platform.exceptions import LtiError
from lti_platform.plugin import compat
from lti_platform.tests.test_utils import TEST_POSTS, add_test_post


class TestGetPost(TestCase):
    """
    Tests for `get_post`.
    """

    def setUp(self):
        super().setUp()
        TEST_POSTS.clear()

    def test_configured_loader(self):
        post = add_test_post(3, 'content')

        self.assertEqual(compat.get_post(3, AnonymousUser()), post)
        self.assertIsNone(compat.get_post(4, AnonymousUser()))

    @override_settings(LTI_PLATFORM_POST_LOADER='')
    def test_no_loader(self):
        add_test_post(3, 'content')

        self.assertIsNone(compat.get_post(3, AnonymousUser()))

    @override_settings(LTI_PLATFORM_POST_LOADER='lti_platform.tests.test_utils.load_test_post')
    def test_badly_written_setting(self):
        with self.assertRaisesRegex(LtiError, 'module.path:function'):
            compat.get_post(3, AnonymousUser())

    @override_settings(LTI_PLATFORM_POST_LOADER='lti_platform.tests.test_utils:missing')
    def test_missing_function(self):
        with self.assertRaises(LtiError):
            compat.get_post(3, AnonymousUser())


class TestGetUserRoles(TestCase):
    """
    Tests for `get_user_roles` and `user_can_manage_tools`.
    """

    def setUp(self):
        super().setUp()
        self.user = get_user_model().objects.create_user('author', 'author@example.com', 'password')

    def test_group_names(self):
        self.user.groups.add(Group.objects.create(name='Author'), Group.objects.create(name='Subscriber'))

        self.assertEqual(sorted(compat.get_user_roles(self.user)), ['author', 'subscriber'])

    def test_superuser(self):
        self.user.is_superuser = True
        self.user.groups.add(Group.objects.create(name='Editor'))

        self.assertEqual(compat.get_user_roles(self.user), ['administrator', 'editor'])

    def test_anonymous_user(self):
        self.assertEqual(compat.get_user_roles(AnonymousUser()), [])

    @override_settings(LTI_PLATFORM_USER_ROLES='lti_platform.tests.test_utils:get_test_user_roles')
    def test_configured_resolver(self):
        self.assertEqual(compat.get_user_roles(self.user), ['author', 'subscriber'])

    def test_user_can_manage_tools(self):
        self.assertFalse(compat.user_can_manage_tools(self.user))
        self.assertFalse(compat.user_can_manage_tools(AnonymousUser()))

        self.user.is_staff = True
        self.assertTrue(compat.user_can_manage_tools(self.user))

    @override_settings(SITE_ID=3)
    def test_current_site_id(self):
        self.assertEqual(compat.get_current_site_id(), 3)

"""
Compatibility layer to isolate host site method calls from implementation.

The LTI Platform does not own the content its links are embedded in, nor the way users are
given roles on the site. Hosts plug their own functions in with the settings below, written
as `module.path:function`:

* LTI_PLATFORM_POST_LOADER: `loader(post_id, user)` returns an object with `id`, `title` and
  `content` attributes, or None if the post does not exist or the user cannot read it.
* LTI_PLATFORM_USER_ROLES: `resolver(user)` returns the list of site role names of a user.
"""
import logging
from importlib import import_module

from django.conf import settings

from lti_platform.exceptions import LtiError

log = logging.getLogger(__name__)


def _load_hook(setting_name):
    """
    Import the function configured in the named setting, or return None if the setting is empty.
    """
    path = getattr(settings, setting_name, None)
    if not path:
        return None
    try:
        module_name, func_name = path.split(':', 1)
        return getattr(import_module(module_name), func_name)
    except ValueError as err:
        raise LtiError(f"The {setting_name} setting must be written as 'module.path:function'.") from err
    except (AttributeError, ModuleNotFoundError) as err:
        raise LtiError(f"Unable to load {setting_name} '{path}': {err}") from err


def get_current_site_id():
    """
    Return the id of the current site, used as the LTI 1.3 deployment id.
    """
    return int(getattr(settings, 'SITE_ID', 1))


def get_post(post_id, user):
    """
    Load a post the user is allowed to read, or None.
    """
    loader = _load_hook('LTI_PLATFORM_POST_LOADER')
    if loader is None:
        log.warning("LTI_PLATFORM_POST_LOADER is not configured; embedded links cannot be launched.")
        return None
    return loader(post_id, user)


def get_user_roles(user):
    """
    Return the site roles of a user.

    By default, these are the names of the user's groups, lower-cased, with `administrator`
    added for superusers.
    """
    resolver = _load_hook('LTI_PLATFORM_USER_ROLES')
    if resolver is not None:
        return list(resolver(user))

    if not getattr(user, 'is_authenticated', False):
        return []
    roles = [name.lower() for name in user.groups.values_list('name', flat=True)]
    if user.is_superuser and 'administrator' not in roles:
        roles.insert(0, 'administrator')
    return roles


def user_can_manage_tools(user):
    """
    Return whether the user may configure tools and insert links, the equivalent of editing content.
    """
    return bool(getattr(user, 'is_staff', False))

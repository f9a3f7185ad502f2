"""
Storage of the LTI 1.3 login state between the third party initiated login
and the authentication request that answers it.

One state is kept per user (or per browser session for anonymous users). Starting
a new login replaces any pending one, and a state is read at most once.
"""
import logging

from edx_django_utils.cache import TieredCache, get_cache_key

log = logging.getLogger(__name__)

# The tool must answer the login request within this many seconds.
LOGIN_STATE_TIMEOUT = 600


def get_login_state_owner(request):
    """
    Return the identifier the login state of the current browser is stored under.
    """
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return f'user-{user.pk}'
    if not request.session.session_key:
        request.session.save()
        # The session middleware only sends the cookie of a modified session
        request.session.modified = True
    return f'session-{request.session.session_key}'


def _cache_key(owner):
    return get_cache_key(app='lti_platform', key='login', owner=owner)


def save_login_state(owner, login_state):
    """
    Store the login state of an owner, replacing any pending one.
    """
    TieredCache.set_all_tiers(_cache_key(owner), login_state, django_cache_timeout=LOGIN_STATE_TIMEOUT)


def pop_login_state(owner):
    """
    Return the pending login state of an owner and clear it, or None if there is none.
    """
    cache_key = _cache_key(owner)
    cached = TieredCache.get_cached_response(cache_key)
    TieredCache.delete_all_tiers(cache_key)
    if not cached.is_found:
        log.info("No pending LTI 1.3 login for %s", owner)
        return None
    return cached.value

"""
Tests for the in-process TTL cache and the cached settings lookups built on it.
"""
from django.test import SimpleTestCase, override_settings

from core.models import SystemSettings, User
from core.services.system_settings import get_system_settings, is_user_admin
from core.services.ttl_cache import MIN_SWEEP_THRESHOLD, TTLCache, build_cache
from core.tests.base import BaseAPITestCase


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TTLCacheTestCase(SimpleTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.cache = TTLCache(5, clock=self.clock)

    def test_entry_expires_after_ttl(self):
        self.cache.set('flags', {'maintenance_mode': False})

        self.clock.advance(4.9)
        self.assertEqual(self.cache.get('flags'), {'maintenance_mode': False})

        self.clock.advance(0.1)
        self.assertIsNone(self.cache.get('flags'))
        self.assertEqual(self.cache.get('flags', 'gone'), 'gone')

    def test_get_or_set_loads_once_per_window(self):
        calls = []

        def loader():
            calls.append(self.clock())
            return len(calls)

        self.assertEqual(self.cache.get_or_set('key', loader), 1)
        self.clock.advance(3)
        self.assertEqual(self.cache.get_or_set('key', loader), 1)
        self.clock.advance(3)
        self.assertEqual(self.cache.get_or_set('key', loader), 2)
        self.assertEqual(calls, [1000.0, 1006.0])

    def test_falsy_values_are_cached(self):
        loader_calls = []
        self.cache.get_or_set('admin', lambda: loader_calls.append(1) or False)
        self.cache.get_or_set('admin', lambda: loader_calls.append(1) or False)
        self.assertEqual(len(loader_calls), 1)
        self.assertIn('admin', self.cache)

    def test_invalidate_and_clear(self):
        self.cache.set('a', 1)
        self.cache.set('b', 2)

        self.cache.invalidate('a')
        self.cache.invalidate('missing')
        self.assertNotIn('a', self.cache)
        self.assertEqual(len(self.cache), 1)

        self.cache.clear()
        self.assertEqual(len(self.cache), 0)

    def test_len_ignores_stale_entries(self):
        self.cache.set('old', 1)
        self.clock.advance(10)
        self.cache.set('new', 2)
        self.assertEqual(len(self.cache), 1)

    def test_stale_keys_are_swept_without_being_read(self):
        for user_id in range(MIN_SWEEP_THRESHOLD - 1):
            self.cache.set(user_id, True)
        self.clock.advance(6)

        self.cache.set('fresh', True)

        self.assertEqual(list(self.cache._entries), ['fresh'])

    def test_storage_stays_bounded_by_live_keys(self):
        for user_id in range(10 * MIN_SWEEP_THRESHOLD):
            self.cache.set(user_id, True)
            self.clock.advance(1)

        # keys set less than five seconds ago
        self.assertEqual(len(self.cache), 4)
        self.assertLess(len(self.cache._entries), MIN_SWEEP_THRESHOLD)

    def test_sweep(self):
        self.cache.set('old', 1)
        self.clock.advance(5)
        self.cache.set('new', 2)
        self.assertEqual(self.cache.sweep(), 1)
        self.assertEqual(list(self.cache._entries), ['new'])

    @override_settings(SETTINGS_CACHE_TTL_SECONDS=42)
    def test_build_cache_reads_ttl_from_settings(self):
        cache = build_cache('SETTINGS_CACHE_TTL_SECONDS', clock=self.clock)
        self.assertEqual(cache.ttl_seconds, 42)
        self.assertIs(cache.clock, self.clock)


class CachedLookupsTestCase(BaseAPITestCase):

    def test_settings_are_served_from_cache_until_cleared(self):
        SystemSettings.load()
        self.assertFalse(get_system_settings()['maintenance_mode'])

        SystemSettings.objects.update(maintenance_mode=True)
        self.assertFalse(get_system_settings()['maintenance_mode'])

        self.clear_process_caches()
        self.assertTrue(get_system_settings()['maintenance_mode'])

    def test_admin_flag_is_cached(self):
        self.assertTrue(is_user_admin(self.admin_user.id))
        self.assertFalse(is_user_admin(self.regular_user.id))

        # queryset update skips the post_save invalidation
        User.objects.filter(pk=self.admin_user.pk).update(is_admin=False)

        with self.assertNumQueries(0):
            self.assertTrue(is_user_admin(self.admin_user.id))

    def test_saving_a_user_invalidates_admin_flag(self):
        self.assertTrue(is_user_admin(self.admin_user.id))

        self.admin_user.is_admin = False
        self.admin_user.save(update_fields=['is_admin'])

        self.assertFalse(is_user_admin(self.admin_user.id))

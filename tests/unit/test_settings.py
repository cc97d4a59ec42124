"""
Unit Tests for Settings Module
Tests for YAML loading, environment overrides and validation
"""

import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

import pytest

from equipment_health.config.settings import Settings, get_settings


@pytest.mark.unit
class TestSettings(unittest.TestCase):
    """Test cases for Settings"""

    def setUp(self):
        self._tmp = TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self._env = patch.dict(os.environ, {}, clear=False)
        self._env.start()
        for name in ('SUPABASE_URL', 'SUPABASE_KEY', 'MODEL_DIR', 'SCHEDULE_INTERVAL_SECONDS',
                     'LOG_LEVEL', 'DEVICE_ID', 'EQUIPMENT_HEALTH_CONFIG', 'ENVIRONMENT'):
            os.environ.pop(name, None)

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def write_config(self, text):
        path = self.tmp / 'config.yaml'
        path.write_text(text)
        return path

    def test_missing_file_uses_defaults(self):
        settings = Settings(self.tmp / 'absent.yaml')

        schedule = settings.get_schedule_config()
        self.assertEqual(schedule.interval_seconds, 60.0)
        self.assertEqual(schedule.window_size, 11)
        self.assertEqual(schedule.rul_fallback, 500.0)
        self.assertIsNone(schedule.device_id)
        self.assertEqual(settings.get_artifact_config().model_dir, Path('./model'))
        self.assertFalse(settings.get_supabase_config().is_configured)

    def test_yaml_is_merged_over_defaults(self):
        path = self.write_config(
            "schedule:\n  interval_seconds: 15\n"
            "supabase:\n  url: https://example.supabase.co/\n  key: secret\n"
        )
        settings = Settings(path)

        self.assertEqual(settings.get_schedule_config().interval_seconds, 15.0)
        supabase = settings.get_supabase_config()
        self.assertEqual(supabase.url, 'https://example.supabase.co')
        self.assertTrue(supabase.is_configured)
        self.assertEqual(supabase.sensor_table, 'sensor_data')

    def test_environment_overrides(self):
        os.environ.update({
            'SUPABASE_URL': 'https://env.supabase.co',
            'SUPABASE_KEY': 'env-key',
            'MODEL_DIR': str(self.tmp / 'models'),
            'SCHEDULE_INTERVAL_SECONDS': '5',
            'LOG_LEVEL': 'debug',
            'DEVICE_ID': 'fridge-9',
        })
        settings = Settings(self.write_config("schedule:\n  interval_seconds: 15\n"))

        self.assertEqual(settings.get_supabase_config().url, 'https://env.supabase.co')
        self.assertEqual(settings.get_supabase_config().key, 'env-key')
        self.assertEqual(settings.get_artifact_config().model_dir, self.tmp / 'models')
        self.assertEqual(settings.get_schedule_config().interval_seconds, 5.0)
        self.assertEqual(settings.get_schedule_config().device_id, 'fridge-9')
        self.assertEqual(settings.get_logging_config().level, 'DEBUG')

    def test_config_path_from_environment(self):
        path = self.write_config("api:\n  port: 9090\n")
        os.environ['EQUIPMENT_HEALTH_CONFIG'] = str(path)

        self.assertEqual(Settings().get_api_config().port, 9090)

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            Settings(self.write_config("schedule:\n  interval_seconds: 0\n"))

    def test_invalid_window_size(self):
        with self.assertRaises(ValueError):
            Settings(self.write_config("pipeline:\n  window_size: 0\n"))

    def test_invalid_port(self):
        with self.assertRaises(ValueError):
            Settings(self.write_config("api:\n  port: 70000\n"))

    def test_malformed_yaml(self):
        with self.assertRaises(ValueError):
            Settings(self.write_config("schedule: [unclosed\n"))

    def test_dot_notation(self):
        settings = Settings(self.tmp / 'absent.yaml')
        settings.set('supabase.timeout_seconds', 3)

        self.assertEqual(settings.get('supabase.timeout_seconds'), 3)
        self.assertEqual(settings.get('no.such.key', 'fallback'), 'fallback')
        self.assertEqual(settings.to_dict()['supabase']['timeout_seconds'], 3)

    def test_get_settings_is_cached(self):
        path = self.write_config("api:\n  port: 8181\n")
        first = get_settings(path)
        self.assertIs(get_settings(), first)


if __name__ == '__main__':
    unittest.main()

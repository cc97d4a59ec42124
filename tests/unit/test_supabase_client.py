"""
Unit Tests for Supabase Client Module
Tests for reading retrieval and result storage with a mocked HTTP session
"""

import unittest
from datetime import datetime
from unittest.mock import Mock

import pytest
import requests

from equipment_health.config.settings import SupabaseConfig
from equipment_health.data_ingestion.supabase_client import SupabaseReadingSource, SupabaseResultSink
from equipment_health.errors import DataSourceError
from equipment_health.inference.result_assembler import PredictionResult
from equipment_health.preprocessing.feature_schema import FEATURE_NAMES

CONFIG = SupabaseConfig(url='https://demo.supabase.co', key='service-key', timeout_seconds=4.0)


def sensor_record(minute, device_id='fridge-1'):
    record = {name: float(i) for i, name in enumerate(FEATURE_NAMES)}
    record.update({'device_id': device_id, 'timestamp': f'2024-05-01T12:{minute:02d}:00'})
    return record


def response(json_data=None, error=None):
    resp = Mock()
    resp.json.return_value = json_data
    resp.raise_for_status.side_effect = error
    return resp


def prediction(part='compressor', condition='warning'):
    return PredictionResult(
        device_id='fridge-1',
        timestamp=datetime(2024, 5, 1, 12, 10, 0),
        is_anomaly=True,
        failure_probability=0.61,
        health_index=0.42,
        remaining_useful_life=88.5,
        part_at_risk=part,
        condition=condition,
    )


@pytest.mark.unit
class TestSupabaseReadingSource(unittest.TestCase):
    """Test cases for SupabaseReadingSource"""

    def setUp(self):
        self.session = Mock()

    def test_fetch_latest_request(self):
        self.session.get.return_value = response([])
        SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(11)

        args, kwargs = self.session.get.call_args
        self.assertEqual(args[0], 'https://demo.supabase.co/rest/v1/sensor_data')
        self.assertEqual(kwargs['params'], {'order': 'timestamp.desc', 'limit': '11'})
        self.assertEqual(kwargs['headers']['apikey'], 'service-key')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer service-key')
        self.assertEqual(kwargs['timeout'], 4.0)

    def test_device_filter(self):
        self.session.get.return_value = response([])
        SupabaseReadingSource(CONFIG, device_id='fridge-3', session=self.session).fetch_latest(5)

        self.assertEqual(self.session.get.call_args[1]['params']['device_id'], 'eq.fridge-3')

    def test_readings_returned_ascending(self):
        self.session.get.return_value = response([sensor_record(m) for m in (10, 9, 8)])

        readings = SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(3)

        self.assertEqual([r.timestamp.minute for r in readings], [8, 9, 10])
        self.assertEqual(readings[0].features, tuple(float(i) for i in range(11)))

    def test_unparsable_record_skipped(self):
        self.session.get.return_value = response([sensor_record(10), 'garbage', sensor_record(9)])

        readings = SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(3)

        self.assertEqual(len(readings), 2)

    def test_unparsable_timestamps_share_one_fallback_time(self):
        records = [sensor_record(10), sensor_record(9), sensor_record(8)]
        records[0]['timestamp'] = 'garbage'
        records[2]['timestamp'] = None
        self.session.get.return_value = response(records)

        readings = SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(3)

        self.assertEqual(readings[0].timestamp, readings[2].timestamp)
        self.assertEqual(readings[1].timestamp, datetime(2024, 5, 1, 12, 9))

    def test_offset_timestamps_are_naive_utc(self):
        records = [sensor_record(m) for m in (10, 9)]
        records[0]['timestamp'] = '2024-05-01T14:10:00+02:00'
        self.session.get.return_value = response(records)

        readings = SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(2)

        self.assertEqual([r.timestamp for r in readings],
                         [datetime(2024, 5, 1, 12, 9), datetime(2024, 5, 1, 12, 10)])

    def test_http_error_raises(self):
        self.session.get.return_value = response(error=requests.HTTPError("401 Unauthorized"))
        with self.assertRaises(DataSourceError):
            SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(11)

    def test_network_error_raises(self):
        self.session.get.side_effect = requests.ConnectionError("unreachable")
        with self.assertRaises(DataSourceError):
            SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(11)

    def test_non_list_payload_raises(self):
        self.session.get.return_value = response({'message': 'oops'})
        with self.assertRaises(DataSourceError):
            SupabaseReadingSource(CONFIG, session=self.session).fetch_latest(11)


@pytest.mark.unit
class TestSupabaseResultSink(unittest.TestCase):
    """Test cases for SupabaseResultSink"""

    def setUp(self):
        self.session = Mock()
        self.session.post.return_value = response()

    def test_payload_embeds_part_in_rul(self):
        payload = SupabaseResultSink(CONFIG, session=self.session).build_payload(prediction())

        self.assertEqual(payload, {
            'timestamp': '2024-05-01 12:10:00',
            'device_id': 'fridge-1',
            'is_anomaly': True,
            'failure_prob': 0.61,
            'health_index': 0.42,
            'rul': '88.5 (Part at risk: compressor)',
        })

    def test_payload_plain_rul_without_part(self):
        sink = SupabaseResultSink(CONFIG, session=self.session)
        self.assertEqual(sink.build_payload(prediction('none', 'normal'))['rul'], 88.5)
        self.assertEqual(sink.build_payload(prediction('unknown', 'normal'))['rul'], 88.5)

    def test_payload_plain_rul_when_disabled(self):
        config = SupabaseConfig(url=CONFIG.url, key=CONFIG.key, embed_part_in_rul=False)
        payload = SupabaseResultSink(config, session=self.session).build_payload(prediction())
        self.assertEqual(payload['rul'], 88.5)

    def test_store_posts_to_predictions(self):
        stored = SupabaseResultSink(CONFIG, session=self.session).store(prediction())

        self.assertTrue(stored)
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], 'https://demo.supabase.co/rest/v1/predictions')
        self.assertEqual(kwargs['json']['device_id'], 'fridge-1')
        self.assertEqual(kwargs['headers']['Content-Type'], 'application/json')

    def test_store_failure_returns_false(self):
        self.session.post.return_value = response(error=requests.HTTPError("500"))
        with self.assertLogs('equipment_health.data_ingestion.supabase_client', level='ERROR'):
            stored = SupabaseResultSink(CONFIG, session=self.session).store(prediction())
        self.assertFalse(stored)


if __name__ == '__main__':
    unittest.main()

"""
Supabase Client Module
Reads the latest sensor readings from, and writes prediction results to,
the Supabase REST interface
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from equipment_health.config.settings import SupabaseConfig
from equipment_health.data_ingestion.sensor_data import SensorReading, utc_now
from equipment_health.errors import DataSourceError

logger = logging.getLogger(__name__)

STORE_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class ReadingSource(Protocol):
    def fetch_latest(self, limit: int) -> List[SensorReading]:
        """Latest ``limit`` readings, ascending by timestamp"""


class ResultSink(Protocol):
    def store(self, result) -> bool:
        """Persist one prediction result; False when it could not be stored"""


class _SupabaseEndpoint:
    """Shared URL and header handling for the REST tables"""

    def __init__(self, config: SupabaseConfig, session: Optional[requests.Session] = None):
        if not config.is_configured:
            logger.warning("Supabase URL or key not configured; requests will fail")
        self.config = config
        self.session = session or requests.Session()

    def table_url(self, table: str) -> str:
        return f"{self.config.url}/rest/v1/{table}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'apikey': self.config.key,
            'Authorization': f"Bearer {self.config.key}",
            'Content-Type': 'application/json',
        }


class SupabaseReadingSource(_SupabaseEndpoint):
    """Reads ``sensor_data`` rows newest first and returns them oldest first"""

    def __init__(self,
                 config: SupabaseConfig,
                 device_id: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize reading source

        Args:
            config: Supabase connection settings
            device_id: Restrict readings to one device; None reads any device
            session: Optional requests session
        """
        super().__init__(config, session)
        self.device_id = device_id

    def fetch_latest(self, limit: int) -> List[SensorReading]:
        """
        Fetch the latest readings

        Args:
            limit: Maximum number of readings

        Returns:
            Readings ascending by timestamp; unparsable rows are skipped

        Raises:
            DataSourceError: HTTP or network failure
        """
        params = {'order': 'timestamp.desc', 'limit': str(limit)}
        if self.device_id:
            params['device_id'] = f"eq.{self.device_id}"

        url = self.table_url(self.config.sensor_table)
        try:
            response = self.session.get(
                url, params=params, headers=self.headers, timeout=self.config.timeout_seconds
            )
            response.raise_for_status()
            records = response.json()
        except requests.RequestException as e:
            raise DataSourceError(f"Failed to fetch sensor data: {e}") from e
        except ValueError as e:
            raise DataSourceError(f"Sensor data response is not valid JSON: {e}") from e

        if not isinstance(records, list):
            raise DataSourceError(f"Expected a JSON array of readings, got {type(records).__name__}")

        # Rows without a usable timestamp share one fallback time per fetch
        fetched_at = utc_now()
        readings = []
        for record in records:
            try:
                readings.append(SensorReading.from_record(record, fetched_at))
            except (AttributeError, TypeError, ValueError) as e:
                logger.error(f"Error parsing sensor record {record!r}: {e}")

        readings.reverse()
        logger.info(f"Fetched {len(readings)} sensor readings")
        return readings


class SupabaseResultSink(_SupabaseEndpoint):
    """Inserts prediction results into the ``predictions`` table"""

    def build_payload(self, result) -> Dict[str, Any]:
        rul: Any = result.remaining_useful_life
        if self.config.embed_part_in_rul and result.has_part_at_risk:
            # Legacy table layout has no part column
            rul = f"{result.remaining_useful_life} (Part at risk: {result.part_at_risk})"

        return {
            'timestamp': result.timestamp.strftime(STORE_TIMESTAMP_FORMAT),
            'device_id': result.device_id,
            'is_anomaly': result.is_anomaly,
            'failure_prob': result.failure_probability,
            'health_index': result.health_index,
            'rul': rul,
        }

    def store(self, result) -> bool:
        payload = self.build_payload(result)
        try:
            response = self.session.post(
                self.table_url(self.config.prediction_table),
                json=payload,
                headers=self.headers,
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to store prediction: {e}")
            return False

        logger.info(f"Stored prediction for device {result.device_id} at {payload['timestamp']}")
        return True

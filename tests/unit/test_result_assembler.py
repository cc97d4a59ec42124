"""
Unit Tests for Result Assembler Module
"""

import unittest
from unittest.mock import Mock

import pytest

from equipment_health.inference.orchestrator import AnomalyScore, InferenceOutputs, PartRiskPrediction
from equipment_health.inference.result_assembler import (
    PART_RISK_LABELS,
    UNKNOWN_PART,
    ResultAssembler,
    map_part_class,
)
from tests.helpers import BASE_TIME, make_reading


def outputs(class_index=None, is_anomaly=False):
    return InferenceOutputs(
        anomaly=AnomalyScore(is_anomaly, 0.3, 0.5),
        failure_probability=0.123456789,
        health_index=0.87654321,
        remaining_useful_life=321.987654,
        part_risk=PartRiskPrediction(class_index, 0.9 if class_index is not None else None),
    )


@pytest.mark.unit
class TestMapPartClass(unittest.TestCase):
    """Test cases for class index mapping"""

    def test_table(self):
        self.assertEqual(len(PART_RISK_LABELS), 6)
        self.assertEqual(map_part_class(0), ('compressor', 'warning'))
        self.assertEqual(map_part_class(4), ('fan_motor', 'warning'))
        self.assertEqual(map_part_class(5), ('none', 'normal'))

    def test_outside_table(self):
        for index in (None, -1, 6, 42, True):
            self.assertEqual(map_part_class(index), UNKNOWN_PART)


@pytest.mark.unit
class TestResultAssembler(unittest.TestCase):
    """Test cases for PredictionResult assembly"""

    def setUp(self):
        self.assembler = ResultAssembler()
        self.reading = make_reading(5)

    def test_fields_are_not_rounded(self):
        result = self.assembler.assemble(self.reading, outputs(class_index=1, is_anomaly=True))

        self.assertEqual(result.device_id, 'fridge-1')
        self.assertEqual(result.timestamp, self.reading.timestamp)
        self.assertTrue(result.is_anomaly)
        self.assertEqual(result.failure_probability, 0.123456789)
        self.assertEqual(result.health_index, 0.87654321)
        self.assertEqual(result.remaining_useful_life, 321.987654)
        self.assertEqual((result.part_at_risk, result.condition), ('condenser', 'warning'))
        self.assertTrue(result.has_part_at_risk)

    def test_fallback_part(self):
        result = self.assembler.assemble(self.reading, outputs())
        self.assertEqual((result.part_at_risk, result.condition), ('unknown', 'normal'))
        self.assertFalse(result.has_part_at_risk)

    def test_no_part_at_risk(self):
        result = self.assembler.assemble(self.reading, outputs(class_index=5))
        self.assertFalse(result.has_part_at_risk)

    def test_to_dict(self):
        result = self.assembler.assemble(self.reading, outputs(class_index=0))
        data = result.to_dict()

        self.assertEqual(data['timestamp'], self.reading.timestamp.isoformat())
        self.assertEqual(data['part_at_risk'], 'compressor')
        self.assertEqual(set(data), {
            'device_id', 'timestamp', 'is_anomaly', 'failure_probability',
            'health_index', 'remaining_useful_life', 'part_at_risk', 'condition',
        })

    def test_labels_follow_class_table(self):
        for index in (None, 0, 1, 2, 3, 4, 5, 6):
            result = self.assembler.assemble(self.reading, outputs(class_index=index))
            self.assertEqual((result.part_at_risk, result.condition), tuple(map_part_class(index)))

    def test_accepts_any_outputs_shape(self):
        raw = Mock(is_anomaly=False, failure_probability=0.1, health_index=0.9,
                   remaining_useful_life=10.0, part_risk=Mock(class_index=3))
        result = self.assembler.assemble(make_reading(), raw)
        self.assertEqual(result.part_at_risk, 'expansion_valve')
        self.assertEqual(result.timestamp, BASE_TIME)


if __name__ == '__main__':
    unittest.main()

"""
Result Assembler Module
Maps raw model outputs into the externally visible prediction result
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, NamedTuple, Optional, Tuple


class PartRiskLabel(NamedTuple):
    part: str
    condition: str


# Class index of the part-risk classifier -> (part, condition)
PART_RISK_LABELS: Tuple[PartRiskLabel, ...] = (
    PartRiskLabel('compressor', 'warning'),
    PartRiskLabel('condenser', 'warning'),
    PartRiskLabel('evaporator', 'warning'),
    PartRiskLabel('expansion_valve', 'warning'),
    PartRiskLabel('fan_motor', 'warning'),
    PartRiskLabel('none', 'normal'),
)

UNKNOWN_PART = PartRiskLabel('unknown', 'normal')


def map_part_class(class_index: Optional[int]) -> PartRiskLabel:
    """Label for a class index; anything outside the table is unknown/normal"""
    if class_index is None or isinstance(class_index, bool):
        return UNKNOWN_PART
    if 0 <= class_index < len(PART_RISK_LABELS):
        return PART_RISK_LABELS[class_index]
    return UNKNOWN_PART


@dataclass(frozen=True)
class PredictionResult:
    """Aggregated health prediction for one device at one reading"""
    device_id: str
    timestamp: datetime
    is_anomaly: bool
    failure_probability: float
    health_index: float
    remaining_useful_life: float
    part_at_risk: str
    condition: str

    @property
    def has_part_at_risk(self) -> bool:
        return self.part_at_risk not in ('none', 'unknown')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'device_id': self.device_id,
            'timestamp': self.timestamp.isoformat(),
            'is_anomaly': self.is_anomaly,
            'failure_probability': self.failure_probability,
            'health_index': self.health_index,
            'remaining_useful_life': self.remaining_useful_life,
            'part_at_risk': self.part_at_risk,
            'condition': self.condition,
        }


class ResultAssembler:
    """Pure mapping from inference outputs to a PredictionResult; no rounding"""

    def assemble(self, reading, outputs) -> PredictionResult:
        """
        Build the result for the reading that triggered the tick

        Args:
            reading: Latest SensorReading of the window
            outputs: InferenceOutputs of the five tasks

        Returns:
            PredictionResult
        """
        label = map_part_class(outputs.part_risk.class_index)
        return PredictionResult(
            device_id=reading.device_id,
            timestamp=reading.timestamp,
            is_anomaly=bool(outputs.is_anomaly),
            failure_probability=float(outputs.failure_probability),
            health_index=float(outputs.health_index),
            remaining_useful_life=float(outputs.remaining_useful_life),
            part_at_risk=label.part,
            condition=label.condition,
        )

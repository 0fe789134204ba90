"""
Threshold-based health advisories from recent vital-sign readings.

Key properties:
- Pure: output depends only on the supplied measurements and rule settings
- Deterministic ordering: rules run in MetricKind.evaluation_order()
- Closed dispatch: every MetricKind has exactly one rule, checked by assert_never
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import assert_never

import structlog

from healthcare.config import AdvisorConfig
from healthcare.domain.models import (
    Advisory,
    AdvisoryDirection,
    AdvisoryReport,
    Measurement,
    MetricKind,
)

logger = structlog.get_logger(__name__)

BLOOD_PRESSURE_HIGH = 140.0
BLOOD_PRESSURE_LOW = 90.0
HEART_RATE_HIGH = 100.0
HEART_RATE_LOW = 60.0
BLOOD_SUGAR_HIGH = 140.0
BLOOD_SUGAR_LOW = 70.0
TEMPERATURE_HIGH_C = 37.5
TEMPERATURE_LOW_C = 36.0
OXYGEN_SATURATION_LOW = 95.0

ADVICE: dict[tuple[MetricKind, AdvisoryDirection], str] = {
    (MetricKind.BLOOD_PRESSURE, AdvisoryDirection.HIGH): (
        "Your blood pressure is elevated. Reduce processed foods, manage stress with yoga "
        "or meditation, stay physically active (30 min/day), and monitor regularly. Consider "
        "consulting a cardiologist for personalized medication or risk evaluation."
    ),
    (MetricKind.BLOOD_PRESSURE, AdvisoryDirection.LOW): (
        "Your blood pressure is lower than normal. Stay well-hydrated, avoid sudden posture "
        "changes, and include slightly more sodium in your diet if advised. Persistent low BP "
        "should be discussed with a healthcare provider to rule out underlying issues like "
        "anemia or adrenal insufficiency."
    ),
    (MetricKind.HEART_RATE, AdvisoryDirection.HIGH): (
        "Your resting heart rate is elevated. This may be due to stress, dehydration, or poor "
        "sleep. Prioritize 7–9 hours of sleep, hydrate consistently, and practice deep "
        "breathing or mindfulness. If it persists, consult a cardiologist for arrhythmia or "
        "thyroid screening."
    ),
    (MetricKind.HEART_RATE, AdvisoryDirection.LOW): (
        "Your heart rate is below average. This could be normal in athletes, but if you "
        "experience fatigue, dizziness, or shortness of breath, seek medical advice to check "
        "for bradycardia or electrolyte imbalance."
    ),
    (MetricKind.BLOOD_SUGAR, AdvisoryDirection.HIGH): (
        "Your blood sugar levels are above normal. Consider a low glycemic index (GI) diet, "
        "increase fiber and protein intake, and engage in regular aerobic exercise. Track your "
        "levels using a glucometer. If readings remain high, get tested for insulin resistance "
        "or type 2 diabetes."
    ),
    (MetricKind.BLOOD_SUGAR, AdvisoryDirection.LOW): (
        "Your blood sugar is low. Eat small, frequent meals and avoid prolonged fasting. Keep "
        "quick glucose sources (e.g., fruit juice, glucose tablets) on hand. If episodes are "
        "recurrent, consult a doctor to assess for hypoglycemia or insulin imbalance."
    ),
    (MetricKind.TEMPERATURE, AdvisoryDirection.HIGH): (
        "You have a mild fever. Stay hydrated, rest, and monitor for symptoms like cough, "
        "fatigue, or sore throat. Seek medical help if temperature exceeds 38.3°C or symptoms "
        "worsen."
    ),
    (MetricKind.TEMPERATURE, AdvisoryDirection.LOW): (
        "Your body temperature is below normal. This could be due to cold exposure, low "
        "metabolism, or medical conditions. Stay warm and consult a doctor if you experience "
        "chills, confusion, or fatigue."
    ),
    (MetricKind.OXYGEN_SATURATION, AdvisoryDirection.LOW): (
        "Your oxygen saturation is below normal. Practice deep breathing exercises, stay "
        "upright, and ensure good ventilation. If you experience shortness of breath, chest "
        "pain, or levels fall below 92%, seek immediate medical attention."
    ),
}

WEIGHT_ADVICE = (
    "You've experienced a {direction} of {magnitude}kg. Sudden weight {direction} can indicate "
    "metabolic changes, hormonal imbalance, or nutritional deficiencies. Consider a "
    "professional evaluation to create a sustainable plan tailored to your health goals."
)


def group_by_kind(measurements: Iterable[Measurement]) -> dict[MetricKind, list[Measurement]]:
    """
    Group measurements by kind, newest first within each group.

    The sort is stable, so readings sharing a timestamp keep their input order
    and the earlier one in the input counts as the latest.
    """
    grouped: defaultdict[MetricKind, list[Measurement]] = defaultdict(list)
    for measurement in measurements:
        grouped[measurement.kind].append(measurement)

    return {
        kind: sorted(readings, key=lambda m: m.measured_at, reverse=True)
        for kind, readings in grouped.items()
    }


def _format_kg(value: float, threshold: float) -> str:
    """
    Two decimals where possible, more when rounding would print a magnitude at
    or below the threshold that triggered the advice.
    """
    for digits in range(2, 7):
        text = f"{value:.{digits}f}".rstrip("0").rstrip(".")
        if float(text) > threshold:
            return text
    return repr(value)


class MetricAdvisor:
    """
    Turns a flat list of measurements into advisory text, one rule per metric kind.

    Holds only immutable rule settings, so one instance can be shared freely.
    """

    def __init__(self, config: AdvisorConfig | None = None) -> None:
        self.config = config or AdvisorConfig()
        self.logger = logger.bind(component="metric_advisor")

    def advise(self, measurements: Iterable[Measurement]) -> list[str]:
        """Return advisory strings in rule evaluation order; empty when all readings are normal."""
        return [advisory.message for advisory in self.evaluate(measurements)]

    def evaluate(self, measurements: Iterable[Measurement]) -> list[Advisory]:
        grouped = group_by_kind(self._window(measurements))

        advisories: list[Advisory] = []
        for kind in MetricKind.evaluation_order():
            readings = grouped.get(kind)
            if not readings:
                continue
            advisory = self._apply_rule(kind, readings)
            if advisory is not None:
                advisories.append(advisory)

        self.logger.debug(
            "advisories_generated",
            kinds_seen=sorted(k.value for k in grouped),
            advisories=[f"{a.kind.value}:{a.direction.value}" for a in advisories],
        )
        return advisories

    def build_report(self, measurements: Iterable[Measurement]) -> AdvisoryReport:
        measurements = list(measurements)
        grouped = group_by_kind(self._window(measurements))
        return AdvisoryReport(
            advisories=self.evaluate(measurements),
            latest={kind: readings[0] for kind, readings in grouped.items()},
        )

    def _window(self, measurements: Iterable[Measurement]) -> list[Measurement]:
        """Restrict to the most recent readings overall when a limit is configured."""
        measurements = list(measurements)
        limit = self.config.recent_limit
        if limit is None or len(measurements) <= limit:
            return measurements
        return sorted(measurements, key=lambda m: m.measured_at, reverse=True)[:limit]

    def _apply_rule(self, kind: MetricKind, readings: Sequence[Measurement]) -> Advisory | None:
        latest = readings[0].value

        if kind is MetricKind.BLOOD_PRESSURE:
            return self._range_rule(kind, latest, BLOOD_PRESSURE_LOW, BLOOD_PRESSURE_HIGH)
        elif kind is MetricKind.HEART_RATE:
            return self._range_rule(kind, latest, HEART_RATE_LOW, HEART_RATE_HIGH)
        elif kind is MetricKind.BLOOD_SUGAR:
            return self._range_rule(kind, latest, BLOOD_SUGAR_LOW, BLOOD_SUGAR_HIGH)
        elif kind is MetricKind.WEIGHT:
            return self._weight_rule(readings)
        elif kind is MetricKind.TEMPERATURE:
            return self._range_rule(kind, latest, TEMPERATURE_LOW_C, TEMPERATURE_HIGH_C)
        elif kind is MetricKind.OXYGEN_SATURATION:
            # No upper bound: anything from 95 up is normal
            return self._range_rule(kind, latest, OXYGEN_SATURATION_LOW, None)
        else:
            assert_never(kind)

    def _range_rule(
        self, kind: MetricKind, value: float, low: float, high: float | None
    ) -> Advisory | None:
        if high is not None and value > high:
            direction = AdvisoryDirection.HIGH
        elif value < low:
            direction = AdvisoryDirection.LOW
        else:
            return None
        return Advisory(kind=kind, direction=direction, message=ADVICE[(kind, direction)])

    def _weight_rule(self, readings: Sequence[Measurement]) -> Advisory | None:
        if len(readings) < 2:
            return None

        change = readings[0].value - readings[1].value
        if abs(change) <= self.config.weight_change_threshold_kg:
            return None

        direction = AdvisoryDirection.GAIN if change > 0 else AdvisoryDirection.LOSS
        magnitude = _format_kg(abs(change), self.config.weight_change_threshold_kg)
        message = WEIGHT_ADVICE.format(direction=direction.value, magnitude=magnitude)
        return Advisory(kind=MetricKind.WEIGHT, direction=direction, message=message)


def generate_advisories(
    measurements: Iterable[Measurement], config: AdvisorConfig | None = None
) -> list[str]:
    """Convenience wrapper: advisory strings for a measurement set."""
    return MetricAdvisor(config).advise(measurements)

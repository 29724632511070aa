from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from carelink.core.errors import ValidationError
from carelink.utils.validation import require_range


class PainLevel(IntEnum):
    """통증 척도(0-5)"""

    NONE = 0
    MILD = 1
    MODERATE = 2
    SEVERE = 3
    VERY_SEVERE = 4
    WORST_POSSIBLE = 5

    @property
    def description(self) -> str:
        return _PAIN_DESCRIPTIONS[self]


_PAIN_DESCRIPTIONS = {
    PainLevel.NONE: "No pain",
    PainLevel.MILD: "Mild pain",
    PainLevel.MODERATE: "Moderate pain",
    PainLevel.SEVERE: "Severe pain",
    PainLevel.VERY_SEVERE: "Very severe pain",
    PainLevel.WORST_POSSIBLE: "Worst possible pain",
}


class BloodPressureCategory(str, Enum):
    """혈압 분류"""

    NORMAL = "Normal"
    ELEVATED = "Elevated"
    STAGE_1 = "Stage 1 Hypertension"
    STAGE_2 = "Stage 2 Hypertension"
    HYPERTENSIVE_CRISIS = "Hypertensive Crisis"


class VitalComponent(str, Enum):
    """추세 분석 대상 항목"""

    BODY_TEMPERATURE = "body_temperature"
    PULSE_RATE = "pulse_rate"
    RESPIRATORY_RATE = "respiratory_rate"
    SYSTOLIC_BP = "systolic_bp"
    DIASTOLIC_BP = "diastolic_bp"
    OXYGEN_SATURATION = "oxygen_saturation"
    BMI = "bmi"


def classify_blood_pressure(systolic: int, diastolic: int) -> BloodPressureCategory:
    """혈압 분류(순서대로 첫 번째 일치)

    Args:
        systolic: 수축기 혈압
        diastolic: 이완기 혈압

    Returns:
        혈압 분류
    """
    if systolic >= 180 or diastolic >= 120:
        return BloodPressureCategory.HYPERTENSIVE_CRISIS
    if systolic >= 140 or diastolic >= 90:
        return BloodPressureCategory.STAGE_2
    if systolic >= 130 or diastolic >= 80:
        return BloodPressureCategory.STAGE_1
    if systolic >= 120:
        return BloodPressureCategory.ELEVATED
    return BloodPressureCategory.NORMAL


class BloodPressure(BaseModel):
    """혈압 측정값(mmHg)"""

    model_config = ConfigDict(frozen=True)

    systolic: int = Field(..., description="수축기 혈압")
    diastolic: int = Field(..., description="이완기 혈압")

    @model_validator(mode="after")
    def _validate_pair(self) -> "BloodPressure":
        if self.systolic <= 0 or self.diastolic <= 0 or self.systolic < self.diastolic:
            raise ValidationError(
                "blood_pressure", f"invalid values: {self.systolic}/{self.diastolic}"
            )
        return self

    @property
    def category(self) -> BloodPressureCategory:
        return classify_blood_pressure(self.systolic, self.diastolic)

    @property
    def reading(self) -> str:
        return f"{self.systolic}/{self.diastolic} mmHg"

    def is_critical(self) -> bool:
        return (
            self.category == BloodPressureCategory.HYPERTENSIVE_CRISIS
            or self.systolic < 90
            or self.diastolic < 60
        )


class VitalSigns(BaseModel):
    """생체신호 스냅샷(불변)"""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="측정 시각")
    body_temperature: float = Field(..., description="체온(섭씨)")
    pulse_rate: int = Field(..., description="맥박수")
    respiratory_rate: int = Field(..., description="호흡수")
    blood_pressure: BloodPressure
    oxygen_saturation: float = Field(..., description="산소포화도")
    height: float | None = Field(default=None, description="키(cm)")
    weight: float | None = Field(default=None, description="몸무게(kg)")
    pain_level: PainLevel = PainLevel.NONE

    @field_validator("body_temperature")
    @classmethod
    def _validate_temperature(cls, value: float) -> float:
        return require_range(value, "body_temperature", 25.0, 43.0, "°C")

    @field_validator("pulse_rate")
    @classmethod
    def _validate_pulse(cls, value: int) -> int:
        return require_range(value, "pulse_rate", 20, 250, "bpm")

    @field_validator("respiratory_rate")
    @classmethod
    def _validate_respiratory(cls, value: int) -> int:
        return require_range(value, "respiratory_rate", 4, 60, "breaths/min")

    @field_validator("oxygen_saturation")
    @classmethod
    def _validate_spo2(cls, value: float) -> float:
        return require_range(value, "oxygen_saturation", 50.0, 100.0, "%")

    @computed_field
    @property
    def bmi(self) -> float | None:
        if self.height is None or self.weight is None:
            return None
        if self.height <= 0 or self.weight <= 0:
            return None
        return self.weight / (self.height / 100) ** 2

    def temperature_abnormal(self) -> bool:
        return self.body_temperature > 39.0 or self.body_temperature < 35.0

    def pulse_abnormal(self) -> bool:
        return self.pulse_rate > 120 or self.pulse_rate < 50

    def respiratory_abnormal(self) -> bool:
        return self.respiratory_rate > 24 or self.respiratory_rate < 10

    def is_critical(self) -> bool:
        """긴급 조치가 필요한 측정값인지 판정"""
        return (
            self.temperature_abnormal()
            or self.pulse_abnormal()
            or self.respiratory_abnormal()
            or self.blood_pressure.is_critical()
            or self.oxygen_saturation < 92.0
        )

    def abnormal_findings(self) -> list[str]:
        """이상 항목을 사람이 읽을 수 있는 문장 목록으로 반환

        Returns:
            이상 항목 문장 목록
        """
        findings: list[str] = []
        if self.temperature_abnormal():
            findings.append(f"Abnormal Temp: {self.body_temperature}°C")
        if self.pulse_abnormal():
            findings.append(f"Abnormal Pulse: {self.pulse_rate} bpm")
        if self.respiratory_abnormal():
            findings.append(f"Abnormal Resp: {self.respiratory_rate}/min")
        if self.blood_pressure.is_critical():
            findings.append(f"Critical BP: {self.blood_pressure.reading}")
        if self.oxygen_saturation < 92.0:
            findings.append(f"Low SpO2: {self.oxygen_saturation}%")
        return findings

    def summary(self) -> str:
        return (
            f"Vital Signs [{self.timestamp.strftime('%H:%M:%S')}]: "
            f"Temp {self.body_temperature:.1f}°C, Pulse {self.pulse_rate} bpm, "
            f"Resp {self.respiratory_rate}/min, BP {self.blood_pressure.reading}, "
            f"SpO2 {self.oxygen_saturation:.1f}%"
        )

    def component_value(self, component: VitalComponent) -> float:
        """추세 분석 항목 값을 반환(BMI 미정의 시 0.0)

        Args:
            component: 항목

        Returns:
            항목 값
        """
        if component == VitalComponent.BODY_TEMPERATURE:
            return float(self.body_temperature)
        if component == VitalComponent.PULSE_RATE:
            return float(self.pulse_rate)
        if component == VitalComponent.RESPIRATORY_RATE:
            return float(self.respiratory_rate)
        if component == VitalComponent.SYSTOLIC_BP:
            return float(self.blood_pressure.systolic)
        if component == VitalComponent.DIASTOLIC_BP:
            return float(self.blood_pressure.diastolic)
        if component == VitalComponent.OXYGEN_SATURATION:
            return float(self.oxygen_saturation)
        bmi = self.bmi
        return bmi if bmi is not None else 0.0


class TrendSummary(BaseModel):
    """기간 내 항목 통계"""

    component: VitalComponent
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    latest: float = 0.0
    sample_count: int = 0

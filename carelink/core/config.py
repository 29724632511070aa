from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from carelink.models.contact import DoctorProfile, PatientProfile


class Settings(BaseSettings):
    """환경 변수에서 애플리케이션 설정을 로드"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    environment: Literal["local", "dev", "prod"] = "local"
    version: str = "0.1.0"
    log_level: str = "INFO"
    config_path: str = "clinic.yaml"
    duckdb_path: str = "data/telemetry.duckdb"
    scheduler_enabled: bool = True
    reminder_workers: int = Field(default=2, gt=0)
    reminder_offsets_hours: list[int] = [24, 1]
    vitals_max_entries: int = Field(default=30, gt=0)
    alert_cooldown_minutes: int = Field(default=5, ge=0)
    notify_base_url: str = ""
    notify_api_key: str = ""
    ehr_base_url: str = "https://ehr.example.com"


class ClinicConfig(BaseModel):
    """등록된 환자와 의사 목록"""

    patients: list[PatientProfile] = []
    doctors: list[DoctorProfile] = []


@lru_cache
def get_settings() -> Settings:
    """캐시된 설정 인스턴스를 반환"""
    return Settings()


@lru_cache
def load_clinic_config() -> ClinicConfig:
    """설정 파일(YAML)에서 환자/의사 목록 로드

    파일이 없으면 빈 목록을 반환한다.

    Returns:
        클리닉 설정 인스턴스
    """
    settings = get_settings()
    path = Path(settings.config_path)
    if not path.exists():
        return ClinicConfig()
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return ClinicConfig(**data)


def reload_clinic_config() -> ClinicConfig:
    """설정 캐시를 초기화하고 다시 로드

    Returns:
        클리닉 설정 인스턴스
    """
    load_clinic_config.cache_clear()
    return load_clinic_config()

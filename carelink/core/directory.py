from __future__ import annotations

import threading

from carelink.core.config import ClinicConfig
from carelink.core.errors import NotFoundError
from carelink.models.contact import DoctorProfile, PatientProfile


class ClinicDirectory:
    """등록된 환자와 의사 프로필 조회"""

    def __init__(
        self,
        patients: list[PatientProfile] | None = None,
        doctors: list[DoctorProfile] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._patients = {p.patient_id: p for p in patients or []}
        self._doctors = {d.doctor_id: d for d in doctors or []}

    @classmethod
    def from_config(cls, config: ClinicConfig) -> "ClinicDirectory":
        return cls(patients=config.patients, doctors=config.doctors)

    def register_patient(self, profile: PatientProfile) -> None:
        with self._lock:
            self._patients[profile.patient_id] = profile

    def register_doctor(self, profile: DoctorProfile) -> None:
        with self._lock:
            self._doctors[profile.doctor_id] = profile

    def find_patient(self, patient_id: str) -> PatientProfile | None:
        with self._lock:
            return self._patients.get(patient_id)

    def find_doctor(self, doctor_id: str) -> DoctorProfile | None:
        with self._lock:
            return self._doctors.get(doctor_id)

    def require_patient(self, patient_id: str) -> PatientProfile:
        """환자 프로필 조회

        Raises:
            NotFoundError: 등록되지 않은 환자인 경우
        """
        profile = self.find_patient(patient_id)
        if profile is None:
            raise NotFoundError("Patient", patient_id)
        return profile

    def require_doctor(self, doctor_id: str) -> DoctorProfile:
        profile = self.find_doctor(doctor_id)
        if profile is None:
            raise NotFoundError("Doctor", doctor_id)
        return profile

    def primary_doctor_for(self, patient_id: str) -> DoctorProfile | None:
        """환자의 주치의 프로필 조회

        Args:
            patient_id: 환자 식별자

        Returns:
            주치의 프로필(미지정 또는 미등록 시 None)
        """
        patient = self.require_patient(patient_id)
        if not patient.primary_doctor_id:
            return None
        return self.find_doctor(patient.primary_doctor_id)

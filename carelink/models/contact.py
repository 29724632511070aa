from pydantic import BaseModel, Field


class Contact(BaseModel):
    """알림 수신 연락처"""

    email: str = Field(..., description="이메일 주소")
    phone: str = Field(..., description="전화번호")


class DoctorProfile(BaseModel):
    """의사 식별 정보"""

    doctor_id: str = Field(..., description="의사 식별자")
    name: str | None = Field(default=None, description="의사 이름")
    contact: Contact


class PatientProfile(BaseModel):
    """환자 식별 정보"""

    patient_id: str = Field(..., description="환자 식별자")
    name: str | None = Field(default=None, description="환자 이름")
    contact: Contact
    primary_doctor_id: str | None = Field(default=None, description="주치의 식별자")


class Prescription(BaseModel):
    """복약 알림에 필요한 처방 요약"""

    medication: str = Field(..., description="약품명")
    dosage: str = Field(..., description="용량/용법")
    prescriber: str = Field(..., description="처방 의사 이름")

from typing import List, Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class PrescriptionItemIn(BaseModel):
    medicine_id: int = Field(..., gt=0)
    medicine_name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    dosage: str = Field(..., min_length=1)
    duration: int = Field(..., ge=1)

    @field_validator("medicine_name", "dosage")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class PrescriptionCreate(BaseModel):
    patient_name: str = Field(..., min_length=1)
    patient_age: int = Field(..., ge=0, le=150)
    patient_gender: Literal["male", "female", "other"]
    doctor_name: str = Field(..., min_length=1)
    doctor_license: str = Field(..., min_length=1)
    items: List[PrescriptionItemIn] = Field(..., min_length=1)
    notes: Optional[str] = None

    @field_validator("patient_name", "doctor_name", "doctor_license")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class PrescriptionValidate(BaseModel):
    notes: Optional[str] = None


class PrescriptionItemResponse(BaseModel):
    id: int
    medicine_id: int
    medicine_name: str
    quantity: int
    dosage: str
    duration: int

    class Config:
        from_attributes = True


class PrescriptionResponse(BaseModel):
    id: int
    prescription_number: str
    patient_name: str
    patient_age: int
    patient_gender: str
    doctor_name: str
    doctor_license: str
    items: List[PrescriptionItemResponse]
    status: str
    validated_by: Optional[int] = None
    validated_at: Optional[datetime] = None
    dispensed_by: Optional[int] = None
    dispensed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

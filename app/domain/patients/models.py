from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Integer, Enum, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.infrastructure.database import Base
import uuid
import enum


def gen_uuid():
    return str(uuid.uuid4())


class Gender(str, enum.Enum):
    """Gender enumeration"""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Patient(Base):
    """Patient record, read by the pharmacy to scope prescriptions"""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255))
    phone_number = Column(String(20))
    gender = Column(Enum(Gender))
    date_of_birth = Column(Date)
    blood_group = Column(String(5))

    created_at = Column(DateTime, default=func.now())

    consultations = relationship("Consultation", back_populates="patient")


class Consultation(Base):
    """A patient visit; prescriptions are written during consultations"""
    __tablename__ = "consultations"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_name = Column(String(200))
    reason = Column(Text)
    actual_start_datetime = Column(DateTime, default=func.now(), index=True)

    patient = relationship("Patient", back_populates="consultations")
    prescriptions = relationship("Prescription", back_populates="consultation")

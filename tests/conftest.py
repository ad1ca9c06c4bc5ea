import pytest
from datetime import date, datetime, timedelta
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app
from app.infrastructure.database import get_db, Base
from app.domain.inventory.models import Medicine, StockBatch, DosageForm
from app.domain.patients.models import Patient, Consultation, Gender
from app.domain.pharmacy.models import Prescription, PrescriptionEntry


# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestSessionLocal = sessionmaker(
    bind=test_engine, autocommit=False, autoflush=False, expire_on_commit=False
)

FUTURE = date.today() + timedelta(days=365)
PAST = date.today() - timedelta(days=1)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_patient(db_session: Session):
    def _make(name: str = "Asha Verma", **kwargs) -> Patient:
        patient = Patient(
            name=name,
            email=kwargs.pop("email", "asha@example.com"),
            phone_number=kwargs.pop("phone_number", "+15550100"),
            gender=kwargs.pop("gender", Gender.FEMALE),
            date_of_birth=kwargs.pop("date_of_birth", date(1988, 4, 12)),
            blood_group=kwargs.pop("blood_group", "B+"),
            **kwargs
        )
        db_session.add(patient)
        db_session.commit()
        return patient
    return _make


@pytest.fixture
def make_medicine(db_session: Session):
    """Medicine with batches given as (batch_no, quantity, expiry_date) tuples"""
    def _make(medicine_id: int = 10000, name: str = "Paracetamol", batches=(), **kwargs) -> Medicine:
        medicine = Medicine(
            id=medicine_id,
            name=name,
            dosage_form=kwargs.pop("dosage_form", DosageForm.TABLET),
            manufacturer=kwargs.pop("manufacturer", "Cipla"),
            available=kwargs.pop("available", True),
            **kwargs
        )
        for batch_no, quantity, expiry in batches:
            medicine.batches.append(
                StockBatch(batch_no=batch_no, quantity=quantity, expiry_date=expiry, unit_price=2.5, supplier="MedSupply")
            )
        db_session.add(medicine)
        db_session.commit()
        return medicine
    return _make


@pytest.fixture
def make_consultation(db_session: Session):
    def _make(patient: Patient, started_at: datetime = None) -> Consultation:
        consultation = Consultation(
            patient_id=patient.id,
            doctor_name="Dr. Rao",
            reason="Fever",
            actual_start_datetime=started_at or datetime(2024, 5, 1, 9, 30),
        )
        db_session.add(consultation)
        db_session.commit()
        return consultation
    return _make


@pytest.fixture
def make_prescription(db_session: Session):
    """Prescription with entries given as (medicine_id, quantity, dispensed_qty) tuples"""
    def _make(consultation: Consultation, entries, prescribed_at: datetime = None) -> Prescription:
        prescription = Prescription(
            consultation_id=consultation.id,
            patient_id=consultation.patient_id,
            prescription_date=prescribed_at or datetime(2024, 5, 1, 10, 0),
        )
        for medicine_id, quantity, dispensed in entries:
            prescription.entries.append(
                PrescriptionEntry(
                    medicine_id=medicine_id,
                    dosage="500mg",
                    frequency="twice daily",
                    duration="5 days",
                    quantity=quantity,
                    dispensed_qty=dispensed,
                )
            )
        prescription.refresh_status()
        db_session.add(prescription)
        db_session.commit()
        return prescription
    return _make


@pytest.fixture
def prescribed(make_patient, make_medicine, make_consultation, make_prescription):
    """A patient whose latest consultation prescribes 10 units of one medicine"""
    def _make(batches, quantity: int = 10, dispensed: int = 0):
        patient = make_patient()
        medicine = make_medicine(batches=batches)
        consultation = make_consultation(patient)
        prescription = make_prescription(consultation, [(medicine.id, quantity, dispensed)])
        return patient, medicine, prescription
    return _make


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "pharmacy: mark test as dispensing related"
    )
    config.addinivalue_line(
        "markers", "inventory: mark test as inventory management related"
    )

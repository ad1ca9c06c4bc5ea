"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


gender = sa.Enum('MALE', 'FEMALE', 'OTHER', name='gender')
effectiveness = sa.Enum('HIGH', 'MEDIUM', 'LOW', name='effectiveness')
dosage_form = sa.Enum(
    'TABLET', 'CAPSULE', 'SYRUP', 'INJECTION', 'CREAM', 'OINTMENT', 'OTHER', name='dosageform'
)
order_status = sa.Enum('REQUESTED', 'ORDERED', 'CANCELLED', name='orderstatus')
prescription_status = sa.Enum('PENDING', 'PARTIALLY_DISPENSED', 'DISPENSED', name='prescriptionstatus')
dispensing_kind = sa.Enum('DISPENSE', 'RETURN', name='dispensingkind')


def upgrade() -> None:
    # Create patients table
    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('gender', gender, nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('blood_group', sa.String(length=5), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Create consultations table
    op.create_table(
        'consultations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('doctor_name', sa.String(length=200), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('actual_start_datetime', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_consultations_patient_id', 'consultations', ['patient_id'], unique=False)
    op.create_index(
        'ix_consultations_actual_start_datetime', 'consultations', ['actual_start_datetime'], unique=False
    )

    # Create medicines table
    op.create_table(
        'medicines',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('effectiveness', effectiveness, nullable=True),
        sa.Column('dosage_form', dosage_form, nullable=True),
        sa.Column('manufacturer', sa.String(length=255), nullable=True),
        sa.Column('available', sa.Boolean(), nullable=False),
        sa.Column('order_status', order_status, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_medicines_name', 'medicines', ['name'], unique=False)

    # Create stock_batches table
    op.create_table(
        'stock_batches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('medicine_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('batch_no', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('manufacturing_date', sa.Date(), nullable=True),
        sa.Column('unit_price', sa.Float(), nullable=True),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_batches_quantity_non_negative'),
        sa.ForeignKeyConstraint(['medicine_id'], ['medicines.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('medicine_id', 'batch_no', name='uq_stock_batches_medicine_batch')
    )
    op.create_index('ix_stock_batches_medicine_id', 'stock_batches', ['medicine_id'], unique=False)

    # Create prescriptions table
    op.create_table(
        'prescriptions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('consultation_id', sa.String(length=36), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('prescription_date', sa.DateTime(), nullable=True),
        sa.Column('status', prescription_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['consultation_id'], ['consultations.id']),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_prescriptions_consultation_id', 'prescriptions', ['consultation_id'], unique=False)
    op.create_index('ix_prescriptions_patient_id', 'prescriptions', ['patient_id'], unique=False)

    # Create prescription_entries table
    op.create_table(
        'prescription_entries',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('prescription_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('medicine_id', sa.Integer(), nullable=False),
        sa.Column('dosage', sa.String(length=100), nullable=False),
        sa.Column('frequency', sa.String(length=100), nullable=False),
        sa.Column('duration', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('dispensed_qty', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_prescription_entries_quantity_positive'),
        sa.CheckConstraint(
            'dispensed_qty >= 0 AND dispensed_qty <= quantity',
            name='ck_prescription_entries_dispensed_within_quantity'
        ),
        sa.ForeignKeyConstraint(['prescription_id'], ['prescriptions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_prescription_entries_prescription_id', 'prescription_entries', ['prescription_id'], unique=False
    )
    op.create_index('ix_prescription_entries_medicine_id', 'prescription_entries', ['medicine_id'], unique=False)

    # Create pharmacy_dispensing table
    op.create_table(
        'pharmacy_dispensing',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('prescription_id', sa.String(length=36), nullable=False),
        sa.Column('sequence_no', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('kind', dispensing_kind, nullable=False),
        sa.Column('dispensed_by', sa.String(length=36), nullable=True),
        sa.Column('dispensed_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['prescription_id'], ['prescriptions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('prescription_id', 'sequence_no', name='uq_pharmacy_dispensing_sequence')
    )
    op.create_index(
        'ix_pharmacy_dispensing_prescription_id', 'pharmacy_dispensing', ['prescription_id'], unique=False
    )

    # Create dispensing_items table
    op.create_table(
        'dispensing_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('dispensing_id', sa.String(length=36), nullable=False),
        sa.Column('entry_id', sa.String(length=36), nullable=False),
        sa.Column('medicine_id', sa.Integer(), nullable=False),
        sa.Column('batch_no', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_dispensing_items_quantity_positive'),
        sa.ForeignKeyConstraint(['dispensing_id'], ['pharmacy_dispensing.id']),
        sa.ForeignKeyConstraint(['entry_id'], ['prescription_entries.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_dispensing_items_dispensing_id', 'dispensing_items', ['dispensing_id'], unique=False)
    op.create_index('ix_dispensing_items_entry_id', 'dispensing_items', ['entry_id'], unique=False)


def downgrade() -> None:
    # Drop all tables in reverse order of creation
    op.drop_table('dispensing_items')
    op.drop_table('pharmacy_dispensing')
    op.drop_table('prescription_entries')
    op.drop_table('prescriptions')
    op.drop_table('stock_batches')
    op.drop_table('medicines')
    op.drop_table('consultations')
    op.drop_table('patients')

    bind = op.get_bind()
    for enum_type in (dispensing_kind, prescription_status, order_status, dosage_form, effectiveness, gender):
        enum_type.drop(bind, checkfirst=True)

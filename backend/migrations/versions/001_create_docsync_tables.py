"""Create client, client_sender, document_type and requirement tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'client',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('compliance_address', sa.Text(), nullable=False),
        sa.Column('status', sa.String(16), server_default='ACTIVE', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name='ck_client_status')
    )

    # Sender addresses are stored lowercase; one address belongs to one client
    op.create_table(
        'client_sender',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email_address', sa.String(320), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('email_address', name='uq_client_sender_email')
    )
    op.create_index('ix_client_sender_client_id', 'client_sender', ['client_id'])

    op.create_table(
        'document_type',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('frequency', sa.String(16), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "frequency IN ('MONTHLY', 'QUARTERLY', 'SEMI_ANNUAL', 'ANNUAL')",
            name='ck_document_type_frequency'
        )
    )

    op.create_table(
        'requirement',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_type_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), server_default='PENDING', nullable=False),
        sa.Column('blob_id', sa.Text(), nullable=True),
        sa.Column('uploaded_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('last_modified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_modified_by', sa.String(100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['document_type_id'], ['document_type.id'], ondelete='RESTRICT'),
        sa.CheckConstraint(
            "status IN ('PENDING', 'RECEIVED', 'VALIDATED', 'COMPLETED', 'OVERDUE', 'CANCELLED')",
            name='ck_requirement_status'
        ),
        sa.CheckConstraint(
            '(blob_id IS NULL) = (uploaded_at IS NULL)',
            name='ck_requirement_blob_uploaded_pair'
        )
    )

    # Matching reads open requirements per client; the sweep scans by status and due date
    op.create_index('idx_requirement_client_status', 'requirement', ['client_id', 'status'])
    op.create_index('idx_requirement_status_due', 'requirement', ['status', 'due_date'])


def downgrade():
    op.drop_index('idx_requirement_status_due', table_name='requirement')
    op.drop_index('idx_requirement_client_status', table_name='requirement')
    op.drop_table('requirement')

    op.drop_table('document_type')

    op.drop_index('ix_client_sender_client_id', table_name='client_sender')
    op.drop_table('client_sender')

    op.drop_table('client')

"""Initial timecard ledger schema.

Revision ID: 001
Revises:
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenants_id', 'tenants', ['id'])
    op.create_index('ix_tenants_label', 'tenants', ['label'], unique=True)

    op.create_table(
        'api_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(length=16), nullable=False),
        sa.Column('digest', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=True),
        sa.Column('scopes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('digest')
    )
    op.create_index('ix_api_keys_id', 'api_keys', ['id'])
    op.create_index('ix_api_keys_tenant_id', 'api_keys', ['tenant_id'])
    op.create_index('ix_api_keys_prefix', 'api_keys', ['prefix'])

    op.create_table(
        'nsr_sequences',
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('current_nsr', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('tenant_id')
    )

    op.create_table(
        'timecard_entries',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('check_in', sa.DateTime(), nullable=True),
        sa.Column('check_out', sa.DateTime(), nullable=True),
        sa.Column('break_start', sa.DateTime(), nullable=True),
        sa.Column('break_end', sa.DateTime(), nullable=True),
        sa.Column('total_hours', sa.String(length=20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('is_manual_entry', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('device_info', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('geo_location', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('nsr', sa.Integer(), nullable=False),
        sa.Column('record_hash', sa.String(length=64), nullable=False),
        sa.Column('previous_record_hash', sa.String(length=64), nullable=True),
        sa.Column('original_record_hash', sa.String(length=64), nullable=False),
        sa.Column('hash_generated_at', sa.DateTime(), nullable=False),
        sa.Column('digital_signature', sa.Text(), nullable=True),
        sa.Column('signature_timestamp', sa.DateTime(), nullable=True),
        sa.Column('signed_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'nsr', name='uq_timecard_tenant_nsr')
    )
    op.create_index('ix_timecard_entries_tenant_id', 'timecard_entries', ['tenant_id'])
    op.create_index('ix_timecard_entries_user_id', 'timecard_entries', ['user_id'])
    op.create_index('ix_timecard_entries_nsr', 'timecard_entries', ['nsr'])
    op.create_index('ix_timecard_entries_record_hash', 'timecard_entries', ['record_hash'])
    op.create_index('ix_timecard_entries_created_at', 'timecard_entries', ['created_at'])

    op.create_table(
        'timecard_audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('timecard_entry_id', sa.String(length=36), nullable=False),
        sa.Column('nsr', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('performed_by', sa.String(length=255), nullable=False),
        sa.Column('performed_at', sa.DateTime(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('device_info', sa.JSON(), nullable=True),
        sa.Column('audit_hash', sa.String(length=64), nullable=False),
        sa.Column('is_system_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_timecard_audit_log_id', 'timecard_audit_log', ['id'])
    op.create_index('ix_timecard_audit_log_tenant_id', 'timecard_audit_log', ['tenant_id'])
    op.create_index('ix_timecard_audit_log_timecard_entry_id', 'timecard_audit_log', ['timecard_entry_id'])
    op.create_index('ix_timecard_audit_log_nsr', 'timecard_audit_log', ['nsr'])
    op.create_index('ix_timecard_audit_log_action', 'timecard_audit_log', ['action'])
    op.create_index('ix_timecard_audit_log_performed_by', 'timecard_audit_log', ['performed_by'])
    op.create_index('ix_timecard_audit_log_performed_at', 'timecard_audit_log', ['performed_at'])

    op.create_table(
        'digital_signature_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('key_name', sa.String(length=255), nullable=False),
        sa.Column('key_algorithm', sa.String(length=50), nullable=False, server_default='RSA-2048'),
        sa.Column('public_key', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('revocation_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_digital_signature_keys_id', 'digital_signature_keys', ['id'])
    op.create_index('ix_digital_signature_keys_tenant_id', 'digital_signature_keys', ['tenant_id'])

    op.create_table(
        'compliance_reports',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('report_type', sa.String(length=20), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('total_records', sa.Integer(), nullable=False),
        sa.Column('total_employees', sa.Integer(), nullable=False),
        sa.Column('total_hours', sa.String(length=20), nullable=False),
        sa.Column('overtime_hours', sa.String(length=20), nullable=False, server_default='0'),
        sa.Column('report_hash', sa.String(length=64), nullable=False),
        sa.Column('report_content', sa.JSON(), nullable=False),
        sa.Column('generated_by', sa.String(length=255), nullable=False),
        sa.Column('is_submitted_to_authorities', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submission_date', sa.DateTime(), nullable=True),
        sa.Column('submission_protocol', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_compliance_reports_tenant_id', 'compliance_reports', ['tenant_id'])
    op.create_index('ix_compliance_reports_report_type', 'compliance_reports', ['report_type'])
    op.create_index('ix_compliance_reports_created_at', 'compliance_reports', ['created_at'])

    op.create_table(
        'timecard_backups',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('backup_date', sa.Date(), nullable=False),
        sa.Column('record_count', sa.Integer(), nullable=False),
        sa.Column('backup_size', sa.BigInteger(), nullable=False),
        sa.Column('backup_hash', sa.String(length=64), nullable=False),
        sa.Column('first_nsr', sa.Integer(), nullable=True),
        sa.Column('last_nsr', sa.Integer(), nullable=True),
        sa.Column('storage_key', sa.String(length=512), nullable=False),
        sa.Column('compression_type', sa.String(length=20), nullable=False, server_default='gzip'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'backup_date', name='uq_backup_tenant_date')
    )
    op.create_index('ix_timecard_backups_id', 'timecard_backups', ['id'])
    op.create_index('ix_timecard_backups_tenant_id', 'timecard_backups', ['tenant_id'])
    op.create_index('ix_timecard_backups_backup_date', 'timecard_backups', ['backup_date'])


def downgrade() -> None:
    op.drop_table('timecard_backups')
    op.drop_table('compliance_reports')
    op.drop_table('digital_signature_keys')
    op.drop_table('timecard_audit_log')
    op.drop_table('timecard_entries')
    op.drop_table('nsr_sequences')
    op.drop_table('api_keys')
    op.drop_table('tenants')

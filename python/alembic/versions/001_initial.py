"""Initial schema - Baseline migration

Revision ID: 001_initial
Revises:
Create Date: 2025-12-08 00:00:00.000000

Baseline migration that creates all tables for the Blacklist Registry.
It corresponds to the models in registry/models.py.
For existing databases, use `alembic stamp 001_initial` to mark as applied.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    """Create initial database schema."""

    risk_level = postgresql.ENUM(
        'LOW', 'MEDIUM', 'HIGH', 'CRITICAL',
        name='risk_level', create_type=True
    )
    risk_level.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'companies',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('country_code', sa.String(2), nullable=False, server_default='MX'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='MXN'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        *_timestamps()
    )

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text),
        *_timestamps()
    )

    op.create_table(
        'fraud_types',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        *_timestamps()
    )

    op.create_table(
        'blacklisted_clients',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.Integer,
                  sa.ForeignKey('categories.id', ondelete='SET NULL')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('ip_address', sa.String(45)),
        sa.Column('tax_id', sa.String(50)),
        sa.Column('address', sa.Text),
        sa.Column('city', sa.String(100)),
        sa.Column('state', sa.String(100)),
        sa.Column('country_code', sa.String(2)),
        sa.Column('currency', sa.String(3)),
        sa.Column('postal_code', sa.String(20)),
        sa.Column('reports_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('trust_score', sa.Integer, nullable=False, server_default='100'),
        sa.Column('risk_level', sa.Enum('LOW', 'MEDIUM', 'HIGH', 'CRITICAL', name='risk_level'),
                  nullable=False, server_default='LOW'),
        sa.Column('risk_factors', sa.JSON, nullable=False, server_default=sa.text("'[]'")),
        sa.Column('total_debt', sa.Numeric(12, 2), nullable=False, server_default='0.00'),
        *_timestamps(),
        sa.CheckConstraint('trust_score >= 0 AND trust_score <= 100', name='ck_trust_score_range')
    )

    op.create_table(
        'blacklist_reports',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('client_id', sa.Integer,
                  sa.ForeignKey('blacklisted_clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', sa.Integer,
                  sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('debt_amount', sa.Numeric(10, 2)),
        sa.Column('currency', sa.String(3)),
        sa.Column('incident_date', sa.Date),
        sa.Column('fraud_type_id', sa.Integer,
                  sa.ForeignKey('fraud_types.id', ondelete='SET NULL')),
        sa.Column('additional_info', sa.Text),
        *_timestamps(),
        sa.CheckConstraint('debt_amount IS NULL OR debt_amount >= 0', name='ck_debt_non_negative')
    )

    op.create_table(
        'phone_numbers',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('client_id', sa.Integer,
                  sa.ForeignKey('blacklisted_clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('reported_by_company_id', sa.Integer,
                  sa.ForeignKey('companies.id', ondelete='SET NULL')),
        *_timestamps()
    )

    # Create indexes
    op.create_index('ix_companies_country_code', 'companies', ['country_code'])

    op.create_index('ix_blacklisted_clients_category_id', 'blacklisted_clients', ['category_id'])
    op.create_index('ix_blacklisted_clients_email', 'blacklisted_clients', ['email'])
    op.create_index('ix_blacklisted_clients_phone', 'blacklisted_clients', ['phone'])
    op.create_index('ix_blacklisted_clients_tax_id', 'blacklisted_clients', ['tax_id'])
    op.create_index('ix_blacklisted_clients_country_code', 'blacklisted_clients', ['country_code'])
    op.create_index('ix_blacklisted_clients_risk_level', 'blacklisted_clients', ['risk_level'])
    op.create_index('ix_client_email_phone', 'blacklisted_clients', ['email', 'phone'])
    op.create_index('ix_client_reports_count', 'blacklisted_clients', ['reports_count'])

    op.create_index('ix_blacklist_reports_client_id', 'blacklist_reports', ['client_id'])
    op.create_index('ix_blacklist_reports_company_id', 'blacklist_reports', ['company_id'])
    op.create_index('ix_blacklist_reports_currency', 'blacklist_reports', ['currency'])
    op.create_index('ix_blacklist_reports_fraud_type_id', 'blacklist_reports', ['fraud_type_id'])
    op.create_index('ix_report_client_created', 'blacklist_reports', ['client_id', 'created_at'])
    op.create_index('ix_report_client_company', 'blacklist_reports', ['client_id', 'company_id'])

    op.create_index('ix_phone_numbers_client_id', 'phone_numbers', ['client_id'])
    op.create_index('ix_phone_client_phone', 'phone_numbers', ['client_id', 'phone'])


def downgrade() -> None:
    """Drop all tables and types."""
    # Drop tables in reverse order
    op.drop_table('phone_numbers')
    op.drop_table('blacklist_reports')
    op.drop_table('blacklisted_clients')
    op.drop_table('fraud_types')
    op.drop_table('categories')
    op.drop_table('companies')

    op.execute('DROP TYPE IF EXISTS risk_level')

"""Platform users, tenants and the shared-store users table

Revision ID: 001_platform_and_users
Revises: 
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_platform_and_users'
down_revision = None


def upgrade():
    # Platform operators
    op.create_table(
        'platform_users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='product_owner'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_platform_users_email', 'platform_users', ['email'], unique=True)

    # Tenants with subscription state
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('subdomain', sa.String(100), nullable=False),
        sa.Column('store_address', sa.String(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('subscription_plan', sa.String(50), nullable=False, server_default='free'),
        sa.Column('subscription_status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('subscription_ends_at', sa.DateTime(), nullable=True),
        sa.Column('billing_customer_ref', sa.String(255), nullable=True),
        sa.Column('billing_subscription_ref', sa.String(255), nullable=True),
        sa.Column('max_users', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_tenants_subdomain', 'tenants', ['subdomain'], unique=True)

    # Tenant users for tenants without a dedicated store
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('employee_id', sa.String(50), nullable=True, unique=True),
        sa.Column('department', sa.String(100), nullable=True),
        sa.Column('designation', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])


def downgrade():
    op.drop_index('ix_users_tenant_id', 'users')
    op.drop_index('ix_users_email', 'users')
    op.drop_table('users')

    op.drop_index('ix_tenants_subdomain', 'tenants')
    op.drop_table('tenants')

    op.drop_index('ix_platform_users_email', 'platform_users')
    op.drop_table('platform_users')

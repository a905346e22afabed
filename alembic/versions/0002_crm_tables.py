"""crm_tables

Tags, courses and enrollments, e-mail templates and the e-mail send log.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002'
down_revision = '0001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'tags',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('color', sa.String(20), nullable=False, server_default='#3B82F6'),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'customer_tags',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('customer_id', sa.Integer, sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag_id', sa.Integer, sa.ForeignKey('tags.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('customer_id', 'tag_id', name='uq_customer_tags_customer_tag'),
    )
    op.create_index('ix_customer_tags_customer_id', 'customer_tags', ['customer_id'])
    op.create_index('ix_customer_tags_tag_id', 'customer_tags', ['tag_id'])

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('customer_id', sa.Integer, sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.Integer, sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ENROLLED'),
        sa.Column('enrolled_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('customer_id', 'course_id', name='uq_enrollments_customer_course'),
    )
    op.create_index('ix_enrollments_customer_id', 'enrollments', ['customer_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])

    op.create_table(
        'email_templates',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('is_default', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'email_logs',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('template_id', sa.Integer, sa.ForeignKey('email_templates.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_id', sa.Integer, sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('recipient_email', sa.String(255), nullable=False),
        sa.Column('recipient_name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('sent_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_email_logs_customer_id', 'email_logs', ['customer_id'])
    op.create_index('ix_email_logs_created_at', 'email_logs', ['created_at'])


def downgrade() -> None:
    op.drop_table('email_logs')
    op.drop_table('email_templates')
    op.drop_table('enrollments')
    op.drop_table('courses')
    op.drop_table('customer_tags')
    op.drop_table('tags')

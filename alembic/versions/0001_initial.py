"""Initial schema - employees, customers, projects, tasks, calendar, attendance, invoices, documents

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', sa.Uuid(), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _deleted_at() -> sa.Column:
    return sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True)


def _address() -> list[sa.Column]:
    return [
        sa.Column('postal_code', sa.String(8)),
        sa.Column('prefecture', sa.String(20)),
        sa.Column('city', sa.String(100)),
        sa.Column('street', sa.String(255)),
        sa.Column('building', sa.String(255)),
    ]


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Employees
    # ==========================================================================
    op.create_table(
        'employees',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(20), server_default=sa.text("'staff'"), nullable=False),
        sa.Column('password_hash', sa.String(255)),
        sa.Column('token_version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True)),
        _created_at(),
        _updated_at(),
        _deleted_at(),
    )

    # ==========================================================================
    # Customers
    # ==========================================================================
    op.create_table(
        'industries',
        _id(),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_table(
        'accounts',
        _id(),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('company_name_kana', sa.String(255)),
        sa.Column('corporate_number', sa.String(13)),
        sa.Column('main_phone', sa.String(50)),
        sa.Column('fax', sa.String(50)),
        *_address(),
        sa.Column('industry', sa.String(100)),
        sa.Column('notes', sa.Text()),
        _created_at(),
        _updated_at(),
        _deleted_at(),
    )
    op.create_index('idx_accounts_company_name', 'accounts', ['company_name'])
    op.create_index('idx_accounts_deleted', 'accounts', ['deleted_at'])

    op.create_table(
        'branches',
        _id(),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('fax', sa.String(50)),
        *_address(),
        _created_at(),
        _updated_at(),
        _deleted_at(),
    )
    op.create_index('idx_branches_account', 'branches', ['account_id'])

    op.create_table(
        'contacts',
        _id(),
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='CASCADE')),
        sa.Column('branch_id', sa.Uuid(), sa.ForeignKey('branches.id', ondelete='SET NULL')),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('first_name', sa.String(100)),
        sa.Column('last_name_kana', sa.String(100)),
        sa.Column('first_name_kana', sa.String(100)),
        sa.Column('birth_date', sa.Date()),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        *_address(),
        sa.Column('department', sa.String(100)),
        sa.Column('position', sa.String(100)),
        sa.Column('is_primary', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('notes', sa.Text()),
        _created_at(),
        _updated_at(),
        _deleted_at(),
    )
    op.create_index('idx_contacts_account', 'contacts', ['account_id'])
    op.create_index('idx_contacts_name', 'contacts', ['last_name', 'first_name'])

    # ==========================================================================
    # Projects
    # ==========================================================================
    op.create_table(
        'projects',
        _id(),
        sa.Column('code', sa.String(20), nullable=False, unique=True),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'受注'"), nullable=False),
        sa.Column('contact_id', sa.Uuid(), sa.ForeignKey('contacts.id', ondelete='SET NULL')),
        sa.Column('manager_id', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        sa.Column('start_date', sa.Date()),
        sa.Column('end_date', sa.Date()),
        sa.Column('fee_tax_excluded', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('location', sa.String(255)),
        sa.Column('location_detail', sa.Text()),
        sa.Column('notes', sa.Text()),
        sa.Column('is_urgent', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_on_hold', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('monthly_allocations', sa.JSON(), nullable=False),
        _created_at(),
        _updated_at(),
        _deleted_at(),
        sa.CheckConstraint('fee_tax_excluded >= 0', name='ck_projects_fee_nonnegative'),
    )
    op.create_index('idx_projects_category', 'projects', ['category'])
    op.create_index('idx_projects_status', 'projects', ['status'])
    op.create_index('idx_projects_manager', 'projects', ['manager_id'])

    op.create_table(
        'project_links',
        _id(),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('related_project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        _created_at(),
        sa.UniqueConstraint('project_id', 'related_project_id', name='uq_project_links_pair'),
        sa.CheckConstraint('project_id <> related_project_id', name='ck_project_links_not_self'),
    )

    op.create_table(
        'stakeholder_tags',
        _id(),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('color', sa.String(20), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_table(
        'project_stakeholders',
        _id(),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('contact_id', sa.Uuid(), sa.ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag_id', sa.Uuid(), sa.ForeignKey('stakeholder_tags.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('note', sa.Text()),
        _created_at(),
        sa.UniqueConstraint('project_id', 'contact_id', 'tag_id', name='uq_project_stakeholders_triple'),
    )

    op.create_table(
        'comments',
        _id(),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        sa.Column('content', sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index('idx_comments_project_created', 'comments', ['project_id', 'created_at'])
    op.create_table(
        'comment_acknowledgements',
        _id(),
        sa.Column('comment_id', sa.Uuid(), sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        _created_at(),
        sa.UniqueConstraint('comment_id', 'employee_id', name='uq_comment_ack'),
    )

    # ==========================================================================
    # Tasks
    # ==========================================================================
    op.create_table(
        'tasks',
        _id(),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('tasks.id', ondelete='CASCADE')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(10), server_default=sa.text("'未着手'"), nullable=False),
        sa.Column('due_date', sa.Date()),
        sa.Column('assigned_to', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('estimated_minutes', sa.Integer()),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('actual_minutes', sa.Integer()),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_tasks_project_parent_sort', 'tasks', ['project_id', 'parent_id', 'sort_order'])
    op.create_index('idx_tasks_assignee_status', 'tasks', ['assigned_to', 'status'])

    op.create_table(
        'task_template_sets',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        _created_at(),
    )
    op.create_table(
        'task_template_items',
        _id(),
        sa.Column('template_set_id', sa.Uuid(), sa.ForeignKey('task_template_sets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('estimated_minutes', sa.Integer()),
        sa.Column('sort_order', sa.Integer(), nullable=False),
    )

    # ==========================================================================
    # Calendar
    # ==========================================================================
    op.create_table(
        'event_categories',
        _id(),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('color', sa.String(7), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_table(
        'calendar_events',
        _id(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('category', sa.String(20)),
        sa.Column('event_category_id', sa.Uuid(), sa.ForeignKey('event_categories.id', ondelete='SET NULL')),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time()),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('end_time', sa.Time()),
        sa.Column('all_day', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('location', sa.String(255)),
        sa.Column('map_url', sa.String(1000)),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='SET NULL')),
        sa.Column('task_id', sa.Uuid(), sa.ForeignKey('tasks.id', ondelete='SET NULL')),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        _created_at(),
        _updated_at(),
    )
    op.create_index('idx_calendar_events_range', 'calendar_events', ['start_date', 'end_date'])
    op.create_table(
        'calendar_event_participants',
        sa.Column('event_id', sa.Uuid(), sa.ForeignKey('calendar_events.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('employee_id', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='CASCADE'), primary_key=True),
    )

    # ==========================================================================
    # Attendance
    # ==========================================================================
    op.create_table(
        'attendance_daily',
        _id(),
        sa.Column('employee_id', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('clock_in', sa.DateTime(timezone=True)),
        sa.Column('clock_out', sa.DateTime(timezone=True)),
        sa.Column('status', sa.String(20), server_default=sa.text("'Work'"), nullable=False),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),
    )
    op.create_table(
        'work_logs',
        _id(),
        sa.Column('attendance_id', sa.Uuid(), sa.ForeignKey('attendance_daily.id', ondelete='CASCADE'), nullable=False),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('minutes', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text()),
        _created_at(),
    )

    # ==========================================================================
    # Invoices
    # ==========================================================================
    op.create_table(
        'business_entities',
        _id(),
        sa.Column('code', sa.String(10), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_table(
        'invoices',
        _id(),
        sa.Column('invoice_number', sa.String(50), nullable=False, unique=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('business_entity_id', sa.Uuid(), sa.ForeignKey('business_entities.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('recipient_contact_id', sa.Uuid(), sa.ForeignKey('contacts.id', ondelete='SET NULL')),
        sa.Column('person_in_charge_id', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        sa.Column('fee_tax_excluded', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('expenses', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('total_amount', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('pdf_path', sa.String(500)),
        sa.Column('notes', sa.Text()),
        sa.Column('is_accounting_registered', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_payment_received', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('payment_received_date', sa.Date()),
        _created_at(),
        _updated_at(),
        _deleted_at(),
        sa.UniqueConstraint('business_entity_id', 'project_id', 'sequence_number', name='uq_invoices_entity_project_seq'),
    )
    op.create_index('idx_invoices_project', 'invoices', ['project_id'])
    op.create_index('idx_invoices_date', 'invoices', ['invoice_date'])

    # ==========================================================================
    # Documents
    # ==========================================================================
    op.create_table(
        'document_templates',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('storage_path', sa.String(500), nullable=False, unique=True),
        sa.Column('file_size', sa.Integer()),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('uploaded_by', sa.Uuid(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        _created_at(),
        _updated_at(),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        'document_templates',
        'invoices',
        'business_entities',
        'work_logs',
        'attendance_daily',
        'calendar_event_participants',
        'calendar_events',
        'event_categories',
        'task_template_items',
        'task_template_sets',
        'tasks',
        'comment_acknowledgements',
        'comments',
        'project_stakeholders',
        'stakeholder_tags',
        'project_links',
        'projects',
        'contacts',
        'branches',
        'accounts',
        'industries',
        'employees',
    ):
        op.drop_table(table)

"""initial schema: students, accounts, groups, messages

Revision ID: 3b1f0c2a9d41
Revises:
Create Date: 2026-10-18 09:12:44.103281

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c2a9d41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'students',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('courses', sa.JSON(), nullable=False),
        sa.Column('cgpa', sa.String(length=32), nullable=False),
        sa.Column('availability', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_students_username'), 'students', ['username'], unique=True)

    op.create_table(
        'user_accounts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id')
    )
    op.create_index(op.f('ix_user_accounts_username'), 'user_accounts', ['username'], unique=True)

    op.create_table(
        'study_groups',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('group_name', sa.String(length=255), nullable=False),
        sa.Column('admin', sa.String(length=64), nullable=False),
        sa.Column('members', sa.JSON(), nullable=False),
        sa.Column('focus_courses', sa.JSON(), nullable=False),
        sa.Column('suggested_times', sa.JSON(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'group_messages',
        sa.Column('seq', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.String(length=36), nullable=False),
        sa.Column('message_id', sa.String(length=128), nullable=False),
        sa.Column('sender', sa.String(length=64), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.String(length=32), nullable=False),
        sa.Column('parent_id', sa.String(length=128), nullable=True),
        sa.Column('reactions', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['group_id'], ['study_groups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('seq'),
        sa.UniqueConstraint('group_id', 'message_id', name='uq_group_message_id')
    )
    op.create_index(op.f('ix_group_messages_group_id'), 'group_messages', ['group_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_group_messages_group_id'), table_name='group_messages')
    op.drop_table('group_messages')
    op.drop_table('study_groups')
    op.drop_index(op.f('ix_user_accounts_username'), table_name='user_accounts')
    op.drop_table('user_accounts')
    op.drop_index(op.f('ix_students_username'), table_name='students')
    op.drop_table('students')

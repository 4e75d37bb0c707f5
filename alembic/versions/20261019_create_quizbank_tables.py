"""create_quizbank_tables

Revision ID: 3f1a9c2d7e10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table('Users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=False),
    sa.Column('display_name', sa.String(length=100), nullable=True),
    sa.Column('is_pending', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Users_email'), 'Users', ['email'], unique=True)

    # Folder names are unique per (owner, parent) among live rows only,
    # which the folder service enforces, so there is no unique constraint
    op.create_table('Folders',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('parent_id', sa.Uuid(), nullable=True),
    sa.Column('owner_id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('color', sa.String(length=20), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.Column('deleted_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['parent_id'], ['Folders.id']),
    sa.ForeignKeyConstraint(['owner_id'], ['Users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Folders_parent_id'), 'Folders', ['parent_id'], unique=False)
    op.create_index(op.f('ix_Folders_owner_id'), 'Folders', ['owner_id'], unique=False)
    op.create_index(op.f('ix_Folders_deleted_at'), 'Folders', ['deleted_at'], unique=False)
    op.create_index('ix_folders_owner_parent', 'Folders', ['owner_id', 'parent_id'], unique=False)

    op.create_table('Quizzes',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('owner_id', sa.Uuid(), nullable=False),
    sa.Column('folder_id', sa.Uuid(), nullable=True),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('category', sa.String(length=50), nullable=False),
    sa.Column('tags', sa.JSON(), nullable=False),
    sa.Column('is_public', sa.Boolean(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('question_count', sa.Integer(), nullable=False),
    sa.Column('estimated_time', sa.Integer(), nullable=False),
    sa.Column('difficulty', sa.String(length=20), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.Column('last_accessed_at', sa.DateTime(), nullable=True),
    sa.Column('deleted_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['owner_id'], ['Users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['folder_id'], ['Folders.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_Quizzes_owner_id'), 'Quizzes', ['owner_id'], unique=False)
    op.create_index(op.f('ix_Quizzes_folder_id'), 'Quizzes', ['folder_id'], unique=False)
    op.create_index(op.f('ix_Quizzes_title'), 'Quizzes', ['title'], unique=False)
    op.create_index(op.f('ix_Quizzes_deleted_at'), 'Quizzes', ['deleted_at'], unique=False)
    op.create_index('ix_quizzes_owner_title', 'Quizzes', ['owner_id', 'title'], unique=False)

    op.create_table('QuizQuestions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quiz_id', sa.Uuid(), nullable=False),
    sa.Column('position', sa.Integer(), nullable=False),
    sa.Column('question', sa.Text(), nullable=False),
    sa.Column('question_type', sa.String(length=30), nullable=False),
    sa.Column('options', sa.JSON(), nullable=False),
    sa.Column('correct_answer', sa.Text(), nullable=False),
    sa.Column('explanation', sa.Text(), nullable=False),
    sa.Column('points', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['quiz_id'], ['Quizzes.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_QuizQuestions_quiz_id'), 'QuizQuestions', ['quiz_id'], unique=False)

    op.create_table('QuizCollaborators',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quiz_id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('permission', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('granted_by', sa.Uuid(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['quiz_id'], ['Quizzes.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['granted_by'], ['Users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('quiz_id', 'user_id', name='uq_quiz_collaborators_quiz_user')
    )
    op.create_index(op.f('ix_QuizCollaborators_quiz_id'), 'QuizCollaborators', ['quiz_id'], unique=False)
    op.create_index(op.f('ix_QuizCollaborators_user_id'), 'QuizCollaborators', ['user_id'], unique=False)

    op.create_table('QuizShares',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quiz_id', sa.Uuid(), nullable=False),
    sa.Column('shared_by', sa.Uuid(), nullable=True),
    sa.Column('recipient_id', sa.Uuid(), nullable=False),
    sa.Column('permission', sa.String(length=20), nullable=False),
    sa.Column('share_token', sa.String(length=64), nullable=False),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('expires_at', sa.DateTime(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['quiz_id'], ['Quizzes.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['shared_by'], ['Users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['recipient_id'], ['Users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_QuizShares_quiz_id'), 'QuizShares', ['quiz_id'], unique=False)
    op.create_index(op.f('ix_QuizShares_recipient_id'), 'QuizShares', ['recipient_id'], unique=False)
    op.create_index(op.f('ix_QuizShares_share_token'), 'QuizShares', ['share_token'], unique=True)

    op.create_table('QuizViews',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quiz_id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('viewed_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['quiz_id'], ['Quizzes.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_QuizViews_quiz_id'), 'QuizViews', ['quiz_id'], unique=False)
    op.create_index(op.f('ix_QuizViews_user_id'), 'QuizViews', ['user_id'], unique=False)

    # entity_id is not a foreign key: entries outlive the entities they describe
    op.create_table('ActivityLogs',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('action', sa.String(length=50), nullable=False),
    sa.Column('entity_type', sa.String(length=20), nullable=True),
    sa.Column('entity_id', sa.Uuid(), nullable=True),
    sa.Column('details', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ActivityLogs_user_id'), 'ActivityLogs', ['user_id'], unique=False)
    op.create_index('ix_activity_logs_entity', 'ActivityLogs', ['entity_type', 'entity_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_activity_logs_entity', table_name='ActivityLogs')
    op.drop_index(op.f('ix_ActivityLogs_user_id'), table_name='ActivityLogs')
    op.drop_table('ActivityLogs')

    op.drop_index(op.f('ix_QuizViews_user_id'), table_name='QuizViews')
    op.drop_index(op.f('ix_QuizViews_quiz_id'), table_name='QuizViews')
    op.drop_table('QuizViews')

    op.drop_index(op.f('ix_QuizShares_share_token'), table_name='QuizShares')
    op.drop_index(op.f('ix_QuizShares_recipient_id'), table_name='QuizShares')
    op.drop_index(op.f('ix_QuizShares_quiz_id'), table_name='QuizShares')
    op.drop_table('QuizShares')

    op.drop_index(op.f('ix_QuizCollaborators_user_id'), table_name='QuizCollaborators')
    op.drop_index(op.f('ix_QuizCollaborators_quiz_id'), table_name='QuizCollaborators')
    op.drop_table('QuizCollaborators')

    op.drop_index(op.f('ix_QuizQuestions_quiz_id'), table_name='QuizQuestions')
    op.drop_table('QuizQuestions')

    op.drop_index('ix_quizzes_owner_title', table_name='Quizzes')
    op.drop_index(op.f('ix_Quizzes_deleted_at'), table_name='Quizzes')
    op.drop_index(op.f('ix_Quizzes_title'), table_name='Quizzes')
    op.drop_index(op.f('ix_Quizzes_folder_id'), table_name='Quizzes')
    op.drop_index(op.f('ix_Quizzes_owner_id'), table_name='Quizzes')
    op.drop_table('Quizzes')

    op.drop_index('ix_folders_owner_parent', table_name='Folders')
    op.drop_index(op.f('ix_Folders_deleted_at'), table_name='Folders')
    op.drop_index(op.f('ix_Folders_owner_id'), table_name='Folders')
    op.drop_index(op.f('ix_Folders_parent_id'), table_name='Folders')
    op.drop_table('Folders')

    op.drop_index(op.f('ix_Users_email'), table_name='Users')
    op.drop_table('Users')

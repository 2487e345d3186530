"""create quiz and question tables

Revision ID: 3c7a91d2e4b0
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7a91d2e4b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())
    if 'quiz' not in tables:
        op.create_table(
            'quiz',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.String(length=200), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('quiz_code', sa.String(length=12), nullable=False),
            sa.Column('num_questions', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('time_per_question', sa.Integer(), nullable=False, server_default='30'),
            sa.Column('points_per_question', sa.Integer(), nullable=False, server_default='1'),
        )
        op.create_index('ix_quiz_quiz_code', 'quiz', ['quiz_code'], unique=True)
    if 'question' not in tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quiz.id'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('text', sa.Text(), nullable=False),
            sa.Column('options_json', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('correct_answer_index', sa.Integer(), nullable=False),
        )
        op.create_index('ix_question_quiz_id', 'question', ['quiz_id'])


def downgrade():
    op.drop_index('ix_question_quiz_id', table_name='question')
    op.drop_table('question')
    op.drop_index('ix_quiz_quiz_code', table_name='quiz')
    op.drop_table('quiz')

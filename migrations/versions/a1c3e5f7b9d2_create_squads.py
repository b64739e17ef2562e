"""Create squads, squad_members and profiles

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-18 12:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c3e5f7b9d2'
down_revision = None
branch_labels = None
depends_on = None


# Store-level capacity check: locks the squad row, then refuses the insert
# once the squad is full. The app matches on the 'squad_full' message.
CAPACITY_FUNCTION = """
CREATE OR REPLACE FUNCTION enforce_squad_capacity() RETURNS trigger AS $$
DECLARE
    squad_capacity integer;
    current_count integer;
BEGIN
    SELECT capacity INTO squad_capacity FROM squads WHERE id = NEW.squad_id FOR UPDATE;
    SELECT count(*) INTO current_count FROM squad_members WHERE squad_id = NEW.squad_id;
    IF current_count >= squad_capacity THEN
        RAISE EXCEPTION 'squad_full' USING ERRCODE = 'check_violation';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

CAPACITY_TRIGGER = """
CREATE TRIGGER squad_members_capacity
    BEFORE INSERT ON squad_members
    FOR EACH ROW EXECUTE FUNCTION enforce_squad_capacity();
"""


def upgrade():
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=120), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('admin_token_hash', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'squads',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('discipline', sa.String(length=20), nullable=False),
        sa.Column('range_name', sa.String(length=200), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('contact_method', sa.String(length=10), nullable=False),
        sa.Column('contact_value', sa.String(length=200), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        sa.Column('pin_hash', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('capacity >= 1', name='check_squad_capacity_positive'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_squads_scheduled_at', 'squads', ['scheduled_at'])
    op.create_index('ix_squads_created_by', 'squads', ['created_by'])
    op.create_table(
        'squad_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('squad_id', sa.String(length=36), nullable=False),
        sa.Column('member_id', sa.String(length=64), nullable=False),
        sa.Column('is_leader', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['squad_id'], ['squads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('squad_id', 'member_id', name='unique_squad_member')
    )
    op.create_index('ix_squad_members_squad_id', 'squad_members', ['squad_id'])
    op.create_index('ix_squad_members_member_id', 'squad_members', ['member_id'])

    if op.get_bind().dialect.name == 'postgresql':
        op.execute(CAPACITY_FUNCTION)
        op.execute(CAPACITY_TRIGGER)


def downgrade():
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('DROP TRIGGER IF EXISTS squad_members_capacity ON squad_members')
        op.execute('DROP FUNCTION IF EXISTS enforce_squad_capacity()')

    op.drop_index('ix_squad_members_member_id', table_name='squad_members')
    op.drop_index('ix_squad_members_squad_id', table_name='squad_members')
    op.drop_table('squad_members')
    op.drop_index('ix_squads_created_by', table_name='squads')
    op.drop_index('ix_squads_scheduled_at', table_name='squads')
    op.drop_table('squads')
    op.drop_table('profiles')

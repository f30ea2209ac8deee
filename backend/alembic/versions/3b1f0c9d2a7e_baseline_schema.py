"""baseline_schema

Revision ID: 3b1f0c9d2a7e
Revises: 
Create Date: 2026-10-18 09:12:04.418220

"""
from typing import Sequence, Union

from alembic import op

from clerk_mirror.db_base import Base
import clerk_mirror.models  # noqa: F401 - required to register all model metadata


# revision identifiers, used by Alembic.
revision: str = '3b1f0c9d2a7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    Base.metadata.create_all(bind=bind)


def downgrade() -> None:
    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind)

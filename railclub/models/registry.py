# railclub/models/registry.py
# Import every model so Base.metadata is complete (create_all, Alembic autogenerate).
from __future__ import annotations

from railclub.models.permission import Permission  # noqa: F401
from railclub.models.user import User  # noqa: F401
from railclub.models.session import SessionToken  # noqa: F401
from railclub.models.club import Club, ClubMembership  # noqa: F401
from railclub.models.address import Address  # noqa: F401
from railclub.models.consist import Consist  # noqa: F401
from railclub.models.tower import Tower  # noqa: F401
from railclub.models.issue import Issue  # noqa: F401
from railclub.models.tower_report import TowerReport  # noqa: F401
from railclub.models.scheduled_session import ScheduledSession  # noqa: F401
from railclub.models.appointment import Appointment  # noqa: F401
from railclub.models.notice import Notice  # noqa: F401
from railclub.models.application import Application  # noqa: F401
from railclub.models.invite_token import InviteToken  # noqa: F401
from railclub.models.email_queue import EmailQueueItem  # noqa: F401

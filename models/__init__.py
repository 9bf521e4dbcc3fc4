# models/__init__.py
# Инициализация моделей

from .user import User, ROLES
from .event import Event, EVENT_STATUSES
from .criterion import Criterion, CATEGORIES
from .team import Team, AWARD_TYPES
from .team_member import TeamMember
from .event_judge import EventJudge
from .score import Score
from .invitation import Invitation

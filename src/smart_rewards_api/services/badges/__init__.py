"""Badge catalogue, criteria evaluation and awarding."""

from .criteria import CustomerStats, evaluate_criteria  # noqa: F401
from .definitions import BADGE_DEFINITIONS, BadgeDefinition  # noqa: F401
from .engine import BadgeEngine, BadgeStatus, RetroactiveSummary  # noqa: F401

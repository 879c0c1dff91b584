"""Schema package exports."""

from .jobs import HomeworkJob
from .sql import ConfidenceTier, Curriculum, SkillRecord, User, UserUsageLog

__all__ = ["ConfidenceTier", "Curriculum", "HomeworkJob", "SkillRecord", "User", "UserUsageLog"]

# models/__init__.py
# Инициализация моделей

from .user import User
from .track import Track
from .room import Room
from .team import Team
from .criterion import Criterion
from .judge_assignment import JudgeAssignment
from .score import Score
from .public_vote import PublicVote
from .quick_snippet import QuickSnippet
from .now_presenting import NowPresenting

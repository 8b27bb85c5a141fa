"""Resource services: typed riddle and player operations."""

from riddlenet.services.players import PlayerService
from riddlenet.services.riddles import RiddleService

__all__ = ["PlayerService", "RiddleService"]

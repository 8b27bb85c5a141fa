"""Player operations: registration, lookups, scores and the leaderboard."""

from __future__ import annotations

from typing import Any

from riddlenet.exceptions import NotFoundError, ValidationError
from riddlenet.models import (
    LeaderboardEntry,
    Player,
    PlayerDetails,
    PlayerRegistration,
    PlayerSummary,
    ScoreResult,
    ScoreSubmission,
)
from riddlenet.services.base import ResourceService, envelope_data, validate_submission

RESOURCE = "players"

MAX_LEADERBOARD_LIMIT = 100


class PlayerService(ResourceService):
    """Typed access to the ``/players`` endpoints.

    Player details are cached under the username and leaderboard pages under
    their limit. Registering a player or submitting a score drops both the
    player's cached details and every cached leaderboard page.
    """

    def create_player(self, username: str) -> Player:
        """Register *username*.

        Raises:
            ValidationError: The username breaks the naming rules. No request
                is sent.
            ConflictError: The username is taken.
        """
        registration = validate_submission(
            PlayerRegistration, {"username": username}, "Player"
        )
        payload = self._client.create(
            RESOURCE, registration.model_dump(), entity_id=registration.username
        )
        return Player.model_validate(envelope_data(payload))

    def get_player_details(self, username: str) -> PlayerDetails:
        """Return the player with aggregate stats and solve history.

        Raises:
            NotFoundError: No such player.
        """
        if not username or not username.strip():
            raise ValidationError("Username is required", errors={"username": "is required"})
        result = self._client.get_by_id(RESOURCE, username)
        return PlayerDetails.model_validate(result.data)

    def find_or_create_player(self, username: str) -> PlayerDetails:
        """Return the existing player, registering them first when unknown."""
        validate_submission(PlayerRegistration, {"username": username}, "Player")
        try:
            return self.get_player_details(username)
        except NotFoundError:
            player = self.create_player(username)
            return PlayerDetails(player=player)

    def is_username_available(self, username: str) -> bool:
        try:
            self.get_player_details(username)
        except NotFoundError:
            return True
        return False

    def submit_score(self, username: str, riddle_id: str, time_to_solve: int) -> ScoreResult:
        """Record that *username* solved *riddle_id* in *time_to_solve* milliseconds."""
        submission = validate_submission(
            ScoreSubmission,
            {"username": username, "riddle_id": riddle_id, "time_to_solve": time_to_solve},
            "Score",
        )
        payload = self._client.write(
            RESOURCE,
            "POST",
            "/players/submit-score",
            submission.model_dump(by_alias=True),
            entity_id=submission.username,
        )
        envelope = payload if isinstance(payload, dict) else {}
        data = envelope_data(payload)
        new_best = bool(data.get("newBest", False)) if isinstance(data, dict) else False
        return ScoreResult(
            success=bool(envelope.get("success", True)),
            message=envelope.get("message"),
            new_best=new_best,
        )

    def get_leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Return the *limit* best players, fastest first."""
        if isinstance(limit, bool) or not isinstance(limit, int) or not (
            1 <= limit <= MAX_LEADERBOARD_LIMIT
        ):
            raise ValidationError(
                f"Limit must be a number between 1 and {MAX_LEADERBOARD_LIMIT}",
                errors={"limit": f"must be between 1 and {MAX_LEADERBOARD_LIMIT}"},
            )
        result = self._client.get_all(
            RESOURCE, {"limit": limit}, path="/players/leaderboard"
        )
        data: Any = result.data
        if not isinstance(data, list):
            return []
        return [LeaderboardEntry.model_validate(item) for item in data]

    def get_player_stats(self, username: str) -> PlayerSummary:
        details = self.get_player_details(username)
        return PlayerSummary(
            username=details.player.username or username,
            best_time=details.player.best_time,
            formatted_best_time=details.player.formatted_best_time,
            created_at=details.player.created_at,
            total_solved=details.stats.total_solved,
            average_time=details.stats.avg_time,
            history_count=len(details.history),
        )

"""Riddle operations: listings, lookups, authoring and answer checks."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from riddlenet.exceptions import ValidationError
from riddlenet.models import (
    AnswerCheck,
    DeleteResult,
    Riddle,
    RiddlePage,
    RiddleSubmission,
    RiddleUpdate,
)
from riddlenet.services.base import ResourceService, envelope_data, validate_submission

RESOURCE = "riddles"


class RiddleService(ResourceService):
    """Typed access to the ``/riddles`` endpoints.

    Listings and single riddles are cached by the resource client; random
    riddles are always fetched fresh. Submissions are validated locally and
    rejected with :class:`~riddlenet.exceptions.ValidationError` before any
    request is made.
    """

    def get_all_riddles(
        self,
        level: Optional[str] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> RiddlePage:
        """List riddles, optionally filtered by *level* and paged with *limit*/*skip*.

        When the server cannot be reached and nothing is cached the page is
        empty and its ``source`` is :attr:`ReadSource.EMPTY`.
        """
        query = {"level": level, "limit": limit, "skip": skip}
        result = self._client.get_all(RESOURCE, {k: v for k, v in query.items() if v is not None})
        payload = result.payload if isinstance(result.payload, dict) else {}
        riddles = [Riddle.model_validate(item) for item in _as_list(result.data)]
        return RiddlePage(
            count=payload.get("count", len(riddles)),
            riddles=riddles,
            source=result.source,
        )

    def get_riddles_by_level(self, level: str, limit: int = 50) -> RiddlePage:
        return self.get_all_riddles(level=level, limit=limit)

    def get_random_riddle(self) -> Riddle:
        result = self._client.read(RESOURCE, "random", "/riddles/random")
        return Riddle.model_validate(result.data)

    def get_riddle_by_id(self, riddle_id: str) -> Riddle:
        _require(riddle_id, "Riddle ID")
        result = self._client.get_by_id(RESOURCE, riddle_id)
        return Riddle.model_validate(result.data)

    def create_riddle(self, riddle: Union[RiddleSubmission, dict[str, Any]]) -> Riddle:
        submission = validate_submission(RiddleSubmission, riddle, "Riddle")
        payload = self._client.create(RESOURCE, submission.model_dump())
        return Riddle.model_validate(envelope_data(payload))

    def update_riddle(
        self, riddle_id: str, updates: Union[RiddleUpdate, dict[str, Any]]
    ) -> Riddle:
        _require(riddle_id, "Riddle ID")
        update = validate_submission(RiddleUpdate, updates, "Riddle update")
        body = update.model_dump(exclude_none=True)
        if not body:
            raise ValidationError("Riddle update has no fields to change")
        payload = self._client.update(RESOURCE, riddle_id, body)
        return Riddle.model_validate(envelope_data(payload))

    def delete_riddle(self, riddle_id: str) -> DeleteResult:
        _require(riddle_id, "Riddle ID")
        payload = self._client.delete(RESOURCE, riddle_id)
        data = envelope_data(payload)
        deleted_id = data.get("id") if isinstance(data, dict) else None
        success = payload.get("success", True) if isinstance(payload, dict) else True
        return DeleteResult(success=bool(success), deleted_id=str(deleted_id or riddle_id))

    def load_initial_riddles(
        self, riddles: Iterable[Union[RiddleSubmission, dict[str, Any]]]
    ) -> Any:
        """Replace the server's riddle set. Clears the whole local cache on success."""
        submissions = [
            validate_submission(RiddleSubmission, item, f"Riddle #{index}").model_dump()
            for index, item in enumerate(riddles, start=1)
        ]
        if not submissions:
            raise ValidationError("At least one riddle is required for a bulk load")
        return self._client.bulk_load(
            RESOURCE, "/riddles/load-initial", {"riddles": submissions}
        )

    def check_answer(self, riddle_id: str, answer: str) -> AnswerCheck:
        """Compare *answer* with the riddle's answer, ignoring case and surrounding spaces."""
        riddle = self.get_riddle_by_id(riddle_id)
        return AnswerCheck(
            is_correct=riddle.is_correct_answer(answer),
            correct_answer=riddle.answer,
            provided_answer=answer,
            riddle_id=riddle.id or riddle_id,
        )


def _as_list(data: Any) -> list[Any]:
    return data if isinstance(data, list) else []


def _require(value: Optional[str], label: str) -> None:
    if not value or not str(value).strip():
        raise ValidationError(f"{label} is required", errors={label: "is required"})

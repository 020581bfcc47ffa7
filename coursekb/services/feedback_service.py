"""Logging of graded completions back into the knowledge base.

A completion is stored as a single record typed ``completion_good`` or
``completion_bad`` so later searches can pull in, or steer away from,
earlier answers to similar prompts.

The record content is a labelled plain-text block::

    Outcome: success
    Score: 92
    Prompt: <original prompt>
    Answer: <model answer>
    Teacher feedback: <feedback>

``Outcome`` and ``Answer`` are always present; the other lines are left out
when not supplied.  Only the model answer is embedded, so the record is
found by searches that resemble the answer itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from coursekb.models.records import ChunkRecord, FeedbackOutcome, FeedbackResult, RecordType
from coursekb.services.record_writer import RecordWriter
from coursekb.utils.errors import InputValidationError

if TYPE_CHECKING:
    from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
    from coursekb.services.embedding_service import EmbeddingService

logger = structlog.get_logger(logger_name=__name__)

COMPLETION_SOURCE_NAME = "completion_log"

_OUTCOME_TYPES: dict[FeedbackOutcome, RecordType] = {
    FeedbackOutcome.SUCCESS: RecordType.COMPLETION_GOOD,
    FeedbackOutcome.FAILURE: RecordType.COMPLETION_BAD,
}


def parse_outcome(value: Any) -> FeedbackOutcome:
    """Accept exactly ``"success"`` or ``"failure"`` (or the enum members).

    Booleans, numbers, ``None`` and any other string, including other
    casings, are rejected.
    """
    if isinstance(value, FeedbackOutcome):
        return value
    if isinstance(value, str):
        try:
            return FeedbackOutcome(value)
        except ValueError:
            pass
    raise InputValidationError(
        f"Invalid outcome {value!r}; expected 'success' or 'failure'"
    )


def format_completion(
    outcome: FeedbackOutcome,
    model_answer: str,
    score: float | int | str | None = None,
    original_prompt: str | None = None,
    teacher_feedback: str | None = None,
) -> str:
    lines = [f"Outcome: {outcome.value}"]
    if isinstance(score, float) and score.is_integer():
        score = int(score)
    if score is not None and str(score).strip():
        lines.append(f"Score: {score}")
    if original_prompt:
        lines.append(f"Prompt: {original_prompt}")
    lines.append(f"Answer: {model_answer}")
    if teacher_feedback:
        lines.append(f"Teacher feedback: {teacher_feedback}")
    return "\n".join(lines)


class FeedbackService:
    """Stores graded completions as feedback records."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._writer = RecordWriter(embedding_service, vector_store)

    async def log_completion(
        self,
        course: str,
        assignment_type: str,
        model_answer: str,
        outcome: FeedbackOutcome | str,
        subtopic: str | None = None,
        original_prompt: str | None = None,
        score: float | int | str | None = None,
        teacher_feedback: str | None = None,
    ) -> FeedbackResult:
        """Encode a graded completion and store it as one record.

        Raises
        ------
        InputValidationError
            If ``course``, ``assignment_type`` or ``model_answer`` is blank,
            or ``outcome`` is not exactly ``success``/``failure``.
        """
        if not course or not course.strip():
            raise InputValidationError("Missing required field: course")
        if not assignment_type or not assignment_type.strip():
            raise InputValidationError("Missing required field: assignment_type")
        if not model_answer or not model_answer.strip():
            raise InputValidationError("Missing required field: model_answer")
        course = course.strip()
        assignment_type = assignment_type.strip()
        parsed_outcome = parse_outcome(outcome)
        record_type = _OUTCOME_TYPES[parsed_outcome]

        record = ChunkRecord(
            course=course,
            type=record_type,
            subtopic=subtopic.strip() or None if subtopic else None,
            assignment_type=assignment_type,
            source_name=COMPLETION_SOURCE_NAME,
            chunk_index=0,
            content=format_completion(
                parsed_outcome,
                model_answer,
                score=score,
                original_prompt=original_prompt,
                teacher_feedback=teacher_feedback,
            ),
        )

        ids = await self._writer.write([record], embed_texts=[model_answer])
        logger.info(
            "completion_logged",
            course=course,
            assignment_type=assignment_type,
            type=record_type.value,
            record_id=ids[0],
        )
        return FeedbackResult(id=ids[0], type=record_type)

"""FastAPI server that exposes test-taking and leaderboard endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
import uvicorn

from cbt_app.constants.cbt_constants import DEFAULT_TIME_LIMIT_MINUTES
from cbt_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from cbt_app.core.errors import InvalidInput
from cbt_app.core.models import Attempt, Question, RankedEntry, ResultsVisibility, ScoreResult
from cbt_app.core.services.scoring import result_message, time_efficiency
from cbt_app.core.test_manager import TestManager


class CreateTestPayload(BaseModel):
    """Payload schema for creating a test."""

    title: str
    creator_id: str
    time_limit_minutes: int = Field(DEFAULT_TIME_LIMIT_MINUTES, gt=0)
    allow_retakes: bool = True
    results_visibility: ResultsVisibility = ResultsVisibility.PUBLIC


class QuestionPayload(BaseModel):
    id: str | None = None
    text: str
    options: list[str]
    correct_option_index: int
    explanation: str | None = None


class AddQuestionsPayload(BaseModel):
    """Either structured questions or a block of text in the import format."""

    questions: list[QuestionPayload] = Field(default_factory=list)
    text: str | None = None


class StartAttemptPayload(BaseModel):
    participant_identity: str


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers; a null index clears the answer."""

    question_id: str
    selected_option_index: int | None = None


class SubmitPayload(BaseModel):
    time_remaining_seconds: int | None = Field(None, ge=0)


class DisqualifyPayload(BaseModel):
    requested_by: str
    disqualified: bool = True


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=f"Attempt cannot be scored: {exc}") from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0] if exc.args else exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _serialize_question(question: Question, include_answer: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": question.id,
        "text": question.text,
        "options": list(question.options),
    }
    if include_answer:
        payload["correct_option_index"] = question.correct_option_index
        payload["explanation"] = question.explanation
    return payload


def _serialize_score(result: ScoreResult) -> dict[str, object]:
    return {
        "correct_count": result.correct_count,
        "total_questions": result.total_questions,
        "percentage": result.percentage,
        "message": result_message(result.percentage),
        "per_question": [
            {
                "question_id": outcome.question_id,
                "selected_option_index": outcome.selected_option_index,
                "is_correct": outcome.is_correct,
            }
            for outcome in result.per_question
        ],
    }


def _serialize_attempt(attempt: Attempt) -> dict[str, object]:
    completed = attempt.is_completed
    payload: dict[str, object] = {
        "id": attempt.id,
        "test_id": attempt.test_id,
        "participant_identity": attempt.participant_identity,
        "status": attempt.status.value,
        "started_at": _iso(attempt.started_at),
        "completed_at": _iso(attempt.completed_at),
        "time_limit_seconds": attempt.time_limit_seconds,
        "time_taken_seconds": attempt.time_taken_seconds,
        "disqualified": attempt.disqualified,
        "questions": [
            _serialize_question(question, include_answer=completed)
            for question in attempt.question_set
        ],
        "answers": {
            question_id: answer.selected_option_index
            for question_id, answer in attempt.answers.items()
        },
        "result": None,
    }
    if completed and attempt.score_result is not None:
        payload["result"] = _serialize_score(attempt.score_result)
        if attempt.time_taken_seconds is not None:
            payload["time_efficiency"] = time_efficiency(
                attempt.time_taken_seconds, attempt.time_limit_seconds
            )
    return payload


def _serialize_ranked(item: RankedEntry) -> dict[str, object]:
    entry = item.entry
    return {
        "rank": item.rank,
        "rank_change": item.rank_change.value,
        "medal": item.medal.value if item.medal else None,
        "attempt_id": entry.attempt_id,
        "participant_identity": entry.participant_identity,
        "score": entry.score,
        "total_questions": entry.total_questions,
        "time_taken_seconds": entry.time_taken_seconds,
        "completed_at": _iso(entry.completed_at),
        "disqualified": entry.disqualified,
    }


def _get_test_manager_dependency(test_manager: TestManager):
    def dependency() -> TestManager:
        return test_manager

    return dependency


def create_api_app(test_manager: TestManager) -> FastAPI:
    """Create a FastAPI application wired to the provided test manager."""
    app = FastAPI(title="CBT API", version="0.1.0")
    manager_dep = _get_test_manager_dependency(test_manager)

    @app.post("/tests", status_code=201)
    def create_test(
        payload: CreateTestPayload,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            test = manager.create_test(
                title=payload.title,
                creator_id=payload.creator_id,
                time_limit_minutes=payload.time_limit_minutes,
                allow_retakes=payload.allow_retakes,
                results_visibility=payload.results_visibility,
            )
        return {
            "id": test.id,
            "title": test.title,
            "creator_id": test.creator_id,
            "time_limit_minutes": test.time_limit_minutes,
            "allow_retakes": test.allow_retakes,
            "results_visibility": test.results_visibility.value,
        }

    @app.post("/tests/{test_id}/questions", status_code=201)
    def add_questions(
        test_id: str,
        payload: AddQuestionsPayload,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            added = manager.add_questions(
                test_id,
                [
                    Question(
                        id=item.id or "",
                        text=item.text,
                        options=list(item.options),
                        correct_option_index=item.correct_option_index,
                        explanation=item.explanation,
                    )
                    for item in payload.questions
                ],
                import_text=payload.text,
            )
        return {
            "added": [_serialize_question(question, include_answer=True) for question in added],
            "question_count": len(manager.get_questions(test_id)),
        }

    @app.post("/tests/{test_id}/attempts", status_code=201)
    def start_attempt(
        test_id: str,
        payload: StartAttemptPayload,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            attempt = manager.start_attempt(test_id, payload.participant_identity)
        return _serialize_attempt(attempt)

    @app.get("/attempts/{attempt_id}")
    def get_attempt(
        attempt_id: str,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            attempt = manager.get_attempt(attempt_id)
        return _serialize_attempt(attempt)

    @app.post("/attempts/{attempt_id}/answers", status_code=201)
    def submit_answer(
        attempt_id: str,
        payload: AnswerPayload,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            answer = manager.submit_answer(
                attempt_id, payload.question_id, payload.selected_option_index
            )
        return {
            "question_id": payload.question_id,
            "selected_option_index": answer.selected_option_index if answer else None,
            "recorded": answer is not None,
        }

    @app.post("/attempts/{attempt_id}/submit")
    def submit_attempt(
        attempt_id: str,
        payload: SubmitPayload | None = None,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        remaining = payload.time_remaining_seconds if payload else None
        with _http_errors():
            attempt = manager.finalize_attempt(attempt_id, time_remaining_seconds=remaining)
        return _serialize_attempt(attempt)

    @app.post("/attempts/{attempt_id}/abandon")
    def abandon_attempt(
        attempt_id: str,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            attempt = manager.abandon_attempt(attempt_id)
        return _serialize_attempt(attempt)

    @app.post("/attempts/{attempt_id}/disqualify")
    def disqualify_attempt(
        attempt_id: str,
        payload: DisqualifyPayload,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            attempt = manager.disqualify_attempt(
                attempt_id, payload.requested_by, payload.disqualified
            )
        return {"id": attempt.id, "disqualified": attempt.disqualified}

    @app.get("/tests/{test_id}/leaderboard")
    def get_leaderboard(
        test_id: str,
        viewer_id: str | None = None,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            ranked = manager.leaderboard(test_id, viewer_id=viewer_id)
        return {
            "test_id": test_id,
            "participants": len(ranked),
            "entries": [_serialize_ranked(item) for item in ranked],
        }

    @app.get("/tests/{test_id}/summary")
    def get_summary(
        test_id: str,
        viewer_id: str | None = None,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            summary = manager.participant_summary(test_id, viewer_id=viewer_id)
        return {
            "submissions": summary.submissions,
            "average_score": summary.average_score,
            "disqualified": summary.disqualified,
        }

    @app.get("/tests/{test_id}/retake")
    def get_retake_eligibility(
        test_id: str,
        participant_identity: str,
        manager: TestManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            allowed = manager.can_retake(test_id, participant_identity)
        return {"test_id": test_id, "can_retake": allowed}

    return app


def start_api_server(
    test_manager: TestManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(test_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="CbtApiServer", daemon=True)
    thread.start()
    return thread

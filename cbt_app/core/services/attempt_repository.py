"""In-memory store of attempts, standing in for the external persistence layer."""

from __future__ import annotations

from cbt_app.core.models import Attempt, AttemptStatus


class AttemptRepository:
    """Keeps attempt records in full fidelity, indexed by id and by test."""

    def __init__(self) -> None:
        self._attempts: dict[str, Attempt] = {}
        self._by_test: dict[str, list[str]] = {}

    def save(self, attempt: Attempt) -> None:
        if attempt.id not in self._attempts:
            self._by_test.setdefault(attempt.test_id, []).append(attempt.id)
        self._attempts[attempt.id] = attempt

    def get(self, attempt_id: str) -> Attempt:
        try:
            return self._attempts[attempt_id]
        except KeyError:
            raise KeyError(f"Attempt {attempt_id} not found") from None

    def list_for_test(self, test_id: str, status: AttemptStatus | None = None) -> list[Attempt]:
        attempts = [self._attempts[attempt_id] for attempt_id in self._by_test.get(test_id, [])]
        if status is not None:
            attempts = [attempt for attempt in attempts if attempt.status is status]
        return attempts

    def completed_for_test(self, test_id: str) -> list[Attempt]:
        return self.list_for_test(test_id, AttemptStatus.COMPLETED)

    def clear(self) -> None:
        self._attempts.clear()
        self._by_test.clear()

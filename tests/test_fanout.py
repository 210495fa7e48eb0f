"""Tests for concurrent branch dispatch."""

from __future__ import annotations

import threading
import time

import pytest

from image_insight.models.base import OutcomeStatus
from image_insight.services.fanout import (
    Branch,
    FanOutOrchestrator,
    FanOutTimeoutError,
    settle_all,
)


def _fail(message: str):
    def call():
        raise RuntimeError(message)

    return call


def test_failures_stay_inside_their_outcome():
    outcomes = settle_all(
        [
            Branch("vision", lambda: {"summary": "ok"}),
            Branch("labels", _fail("labels down")),
            Branch("faces", _fail("faces down")),
        ]
    )

    assert list(outcomes) == ["vision", "labels", "faces"]
    assert outcomes["vision"].ok
    assert outcomes["vision"].value == {"summary": "ok"}
    assert outcomes["labels"].status is OutcomeStatus.FAILURE
    assert outcomes["labels"].error == "labels down"
    assert outcomes["faces"].error_type == "RuntimeError"


def test_result_order_follows_submission_not_completion():
    def slow():
        time.sleep(0.05)
        return "slow"

    outcomes = settle_all([Branch("slow", slow), Branch("fast", lambda: "fast")])

    assert list(outcomes) == ["slow", "fast"]
    assert outcomes["slow"].value == "slow"


def test_branches_run_concurrently():
    barrier = threading.Barrier(2, timeout=2)

    def meet():
        barrier.wait()
        return True

    outcomes = settle_all([Branch("a", meet), Branch("b", meet)], max_workers=2)

    assert all(outcome.ok for outcome in outcomes.values())


def test_timeout_abandons_pending_branches():
    release = threading.Event()

    def stalled():
        release.wait(2)
        return "late"

    try:
        with pytest.raises(FanOutTimeoutError) as excinfo:
            settle_all([Branch("quick", lambda: 1), Branch("stalled", stalled)], timeout=0.2)
    finally:
        release.set()

    assert excinfo.value.pending == ["stalled"]


def test_duplicate_branch_names_are_rejected():
    with pytest.raises(ValueError):
        settle_all([Branch("a", lambda: 1), Branch("a", lambda: 2)])


def test_empty_branch_list_settles_immediately():
    assert settle_all([]) == {}


def test_exception_without_message_uses_type_name():
    def boom():
        raise KeyError()

    outcome = settle_all([Branch("boom", boom)])["boom"]

    assert outcome.error == "KeyError"


def test_orchestrator_builds_composite_result():
    orchestrator = FanOutOrchestrator(max_workers=2)

    composite = orchestrator.run([Branch("vision", lambda: {"a": 1}), Branch("text", _fail("nope"))])
    payload = composite.as_dict()

    assert composite.succeeded() == ["vision"]
    assert composite.failed() == ["text"]
    assert payload["results"]["vision"] == {"status": "success", "result": {"a": 1}}
    assert payload["results"]["text"] == {
        "status": "failure",
        "error": "nope",
        "errorType": "RuntimeError",
    }
    assert payload["processingTime"] >= 0
    assert payload["timestamp"]
    with pytest.raises(TypeError):
        composite.outcomes["extra"] = None

"""Tests for execution progress calculation."""

import pytest

from flowkit.analysis.progress import (
    calculate_execution_progress,
    calculate_progress,
    should_show_progress,
    stage_state,
)
from flowkit.models.execution import FlowExecution, StageExecution


def _stages(*states: str) -> list[StageExecution]:
    return [
        StageExecution(node_id=f"stage-{i}", estado=state)
        for i, state in enumerate(states)
    ]


class TestCalculateProgress:
    """Test stage counting."""

    def test_empty_and_missing_give_no_progress(self):
        """No stages means no progress, not a zero-total record."""
        assert calculate_progress([]) is None
        assert calculate_progress(None) is None

    def test_rounds_to_nearest(self):
        """Two of three completed is 67%, not 66%."""
        progress = calculate_progress(_stages("completed", "completed", "pending"))
        assert progress.percentage == 67
        assert progress.completed == 2
        assert progress.total == 3

    @pytest.mark.parametrize(
        "states, expected",
        [
            (("completed",), 100),
            (("pending",), 0),
            (("completed", "pending", "pending"), 33),
            (("completed", "pending"), 50),
            (("completed",) + ("pending",) * 7, 13),  # 12.5 rounds up
        ],
    )
    def test_percentages(self, states, expected):
        assert calculate_progress(_stages(*states)).percentage == expected

    def test_only_completed_counts_as_done(self):
        """Executing and failed stages are counted separately."""
        progress = calculate_progress(
            _stages("completed", "executing", "failed", "pending", "pending")
        )
        assert progress.completed == 1
        assert progress.executing_count == 1
        assert progress.failed_count == 1
        assert progress.pending_count == 2
        assert progress.percentage == 20

    def test_from_execution(self):
        execution = FlowExecution(id=1, estado="in_progress", etapas=_stages("completed"))
        assert calculate_execution_progress(execution).percentage == 100
        assert calculate_execution_progress(None) is None
        assert calculate_execution_progress(FlowExecution(id=1, estado="pending")) is None


class TestShowProgress:
    """Test the display threshold."""

    def test_needs_a_completed_stage(self):
        assert not should_show_progress(None)
        assert not should_show_progress(calculate_progress(_stages("pending", "executing")))
        assert should_show_progress(calculate_progress(_stages("completed", "pending")))


class TestStageState:
    """Test looking up a node's tracking record."""

    def test_finds_record(self):
        execution = FlowExecution(id=1, estado="in_progress", etapas=_stages("completed", "pending"))
        assert stage_state(execution, "stage-1").estado == "pending"
        assert stage_state(execution, "stage-9") is None
        assert stage_state(None, "stage-1") is None

    def test_last_record_wins(self):
        execution = FlowExecution(
            id=1,
            estado="in_progress",
            etapas=[
                StageExecution(node_id="stage-a", estado="failed"),
                StageExecution(node_id="stage-a", estado="completed"),
            ],
        )
        assert stage_state(execution, "stage-a").estado == "completed"

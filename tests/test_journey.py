import json
import random
from unittest.mock import patch

import pytest

from abundance_flow.journey import JOURNEY_STORAGE_KEY, JourneyEngine
from abundance_flow.models import JourneyMode, SlotState


@pytest.fixture
def journey(store, clock):
    return JourneyEngine(store, clock=clock)


def _stored(store):
    return json.loads(store.get(JOURNEY_STORAGE_KEY))


def assert_invariants(state):
    if state.mode is JourneyMode.SELECTING:
        assert state.selected_path_id is None
        assert state.stages_completed == 0
    elif state.mode is JourneyMode.ACTIVE:
        assert state.selected_path_id is not None
        assert 0 <= state.stages_completed < 3
        assert state.selected_path_id not in state.mastered_path_ids
    else:
        assert state.selected_path_id is not None
        assert state.stages_completed == 3
        assert state.selected_path_id in state.mastered_path_ids
    assert len(set(state.mastered_path_ids)) == len(state.mastered_path_ids)


def test_fresh_state(journey):
    state = journey.snapshot()
    assert state.mode is JourneyMode.SELECTING
    assert state.mastered_path_ids == []
    assert journey.current_task() is None
    assert all(slot is SlotState.AVAILABLE for _, slot in journey.slots())


def test_select_path(journey):
    assert journey.select_path("ruby") is True
    assert journey.slot_state("ruby") is SlotState.ACTIVE
    assert journey.slot_state("citrine") is SlotState.LOCKED
    state = journey.snapshot()
    assert state.mode is JourneyMode.ACTIVE
    assert state.selected_path_id == "ruby"
    assert state.stages_completed == 0


def test_select_unknown_path_fails(journey):
    assert journey.select_path("onyx") is False
    assert journey.snapshot().mode is JourneyMode.SELECTING


def test_select_same_path_is_idempotent(journey):
    journey.select_path("ruby")
    journey.complete_stage()
    assert journey.select_path("ruby") is True
    assert journey.snapshot().stages_completed == 1


def test_select_other_path_while_active_fails(journey):
    journey.select_path("ruby")
    before = journey.snapshot()
    assert journey.select_path("citrine") is False
    assert journey.snapshot() == before


def test_complete_stage_without_active_path_fails(journey):
    assert journey.complete_stage() is False
    assert journey.snapshot().stages_completed == 0


def test_current_task_tracks_stages(journey):
    journey.select_path("emerald")
    task = journey.current_task()
    assert task.stage == 1
    assert task.path_id == "emerald"
    assert task.text == journey.catalog.get("emerald").stages[0]
    journey.complete_stage()
    assert journey.current_task().stage == 2
    journey.complete_stage()
    assert journey.current_task().text == journey.catalog.get("emerald").stages[2]


def test_three_stages_masters_path(journey):
    journey.select_path("ruby")
    assert journey.complete_stage() is True
    assert journey.complete_stage() is True
    assert journey.snapshot().mode is JourneyMode.ACTIVE
    assert journey.complete_stage() is True

    state = journey.snapshot()
    assert state.mode is JourneyMode.COMPLETE
    assert state.selected_path_id == "ruby"
    assert state.stages_completed == 3
    assert state.mastered_path_ids == ["ruby"]
    assert journey.slot_state("ruby") is SlotState.MASTERED
    assert journey.current_task() is None


def test_fourth_stage_fails_and_changes_nothing(journey):
    journey.select_path("ruby")
    for _ in range(3):
        journey.complete_stage()
    before = journey.snapshot()
    assert journey.complete_stage() is False
    assert journey.snapshot() == before
    assert journey.snapshot().mastered_path_ids.count("ruby") == 1


def test_reset_keeps_mastery(journey):
    journey.select_path("ruby")
    for _ in range(3):
        journey.complete_stage()
    journey.reset_to_selection()
    state = journey.snapshot()
    assert state.mode is JourneyMode.SELECTING
    assert state.selected_path_id is None
    assert journey.slot_state("ruby") is SlotState.MASTERED
    assert journey.slot_state("citrine") is SlotState.AVAILABLE


def test_reset_abandons_active_path(journey):
    journey.select_path("sapphire")
    journey.complete_stage()
    journey.reset_to_selection()
    assert journey.snapshot().stages_completed == 0
    assert journey.slot_state("sapphire") is SlotState.AVAILABLE
    assert journey.select_path("citrine") is True


def test_mastered_path_cannot_be_reselected(journey):
    journey.select_path("ruby")
    for _ in range(3):
        journey.complete_stage()
    assert journey.select_path("ruby") is False
    journey.reset_to_selection()
    assert journey.select_path("ruby") is False
    journey.select_path("citrine")
    assert journey.slot_state("ruby") is SlotState.MASTERED


def test_select_from_complete_mode(journey):
    journey.select_path("ruby")
    for _ in range(3):
        journey.complete_stage()
    assert journey.select_path("citrine") is True
    assert journey.snapshot().mode is JourneyMode.ACTIVE
    assert journey.slot_state("ruby") is SlotState.MASTERED


def test_all_paths_mastered(journey):
    for path_id in journey.catalog.ids():
        assert not journey.all_paths_mastered()
        journey.select_path(path_id)
        for _ in range(3):
            journey.complete_stage()
        journey.reset_to_selection()
    assert journey.all_paths_mastered()
    assert all(slot is SlotState.MASTERED for _, slot in journey.slots())


def test_clear_all_progress(journey):
    journey.select_path("ruby")
    for _ in range(3):
        journey.complete_stage()
    journey.clear_all_progress()
    state = journey.snapshot()
    assert state.mode is JourneyMode.SELECTING
    assert state.mastered_path_ids == []
    assert journey.slot_state("ruby") is SlotState.AVAILABLE


def test_snapshot_is_a_copy(journey):
    journey.select_path("ruby")
    snap = journey.snapshot()
    snap.mastered_path_ids.append("citrine")
    snap.stages_completed = 2
    assert journey.snapshot().mastered_path_ids == []
    assert journey.snapshot().stages_completed == 0


def test_random_sequences_keep_invariants(store, clock):
    rng = random.Random(1234)
    journey = JourneyEngine(store, clock=clock)
    ids = journey.catalog.ids() + ["onyx"]
    mastered_seen = set()
    for _ in range(500):
        action = rng.choice(["select", "select", "stage", "stage", "stage", "reset"])
        if action == "select":
            journey.select_path(rng.choice(ids))
        elif action == "stage":
            journey.complete_stage()
        else:
            journey.reset_to_selection()
        state = journey.snapshot()
        assert_invariants(state)
        assert mastered_seen <= set(state.mastered_path_ids)
        mastered_seen = set(state.mastered_path_ids)
        for path_id in mastered_seen:
            assert journey.slot_state(path_id) is SlotState.MASTERED
        active = [p for p, slot in journey.slots() if slot is SlotState.ACTIVE]
        assert len(active) <= 1


# --- persistence ---

def test_state_persists_across_instances(store, clock):
    journey = JourneyEngine(store, clock=clock)
    journey.select_path("ruby")
    for _ in range(3):
        journey.complete_stage()
    journey.reset_to_selection()
    journey.select_path("amethyst")
    journey.complete_stage()

    reloaded = JourneyEngine(store, clock=clock)
    assert reloaded.snapshot() == journey.snapshot()
    assert reloaded.slot_state("ruby") is SlotState.MASTERED
    assert reloaded.current_task().stage == 2


def test_every_mutation_is_written(journey, store):
    journey.select_path("obsidian")
    assert _stored(store)["mode"] == "active"
    journey.complete_stage()
    assert _stored(store)["stages_completed"] == 1
    journey.reset_to_selection()
    assert _stored(store)["selected_path_id"] is None


def test_updated_at_comes_from_clock(journey, clock):
    journey.select_path("ruby")
    assert journey.snapshot().updated_at == int(clock.now().timestamp() * 1000)


def test_rejected_transition_writes_nothing(journey, store):
    assert journey.complete_stage() is False
    assert store.get(JOURNEY_STORAGE_KEY) is None


@pytest.mark.parametrize("blob", [
    "{not json",
    "[]",
    '{"mode": "bogus", "selected_path_id": null, "stages_completed": 0, "mastered_path_ids": [], "updated_at": 0}',
    '{"mode": "active", "selected_path_id": "ruby", "stages_completed": 7, "mastered_path_ids": [], "updated_at": 0}',
    '{"mode": "active", "selected_path_id": "ruby", "stages_completed": "1", "mastered_path_ids": [], "updated_at": 0}',
    '{"mode": "selecting", "selected_path_id": null, "stages_completed": 0, "mastered_path_ids": "ruby", "updated_at": 0}',
    '{"mode": "selecting", "selected_path_id": null, "stages_completed": 0, "mastered_path_ids": [1, 2], "updated_at": 0}',
    '{"mode": "selecting", "selected_path_id": null, "stages_completed": 0, "mastered_path_ids": []}',
    '{"mode": "selecting", "selected_path_id": "ruby", "stages_completed": 0, "mastered_path_ids": [], "updated_at": 0}',
    '{"mode": "active", "selected_path_id": "ruby", "stages_completed": 1, "mastered_path_ids": ["ruby"], "updated_at": 0}',
    '{"mode": "complete", "selected_path_id": "ruby", "stages_completed": 3, "mastered_path_ids": [], "updated_at": 0}',
    '{"mode": "active", "selected_path_id": "onyx", "stages_completed": 1, "mastered_path_ids": [], "updated_at": 0}',
    '{"mode": "selecting", "selected_path_id": null, "stages_completed": 0, "mastered_path_ids": ["ruby", "ruby"], "updated_at": 0}',
    pytest.param("[" * 200000 + "]" * 200000, id="deeply-nested"),
])
def test_corrupted_blob_loads_default(store, clock, blob):
    store.set(JOURNEY_STORAGE_KEY, blob)
    journey = JourneyEngine(store, clock=clock)
    state = journey.snapshot()
    assert state.mode is JourneyMode.SELECTING
    assert state.selected_path_id is None
    assert state.stages_completed == 0
    assert state.mastered_path_ids == []


def test_corrupted_blob_is_logged(store, clock, caplog):
    store.set(JOURNEY_STORAGE_KEY, '{"mode": "bogus"}')
    with caplog.at_level("WARNING"):
        JourneyEngine(store, clock=clock)
    assert "Discarding corrupted" in caplog.text


def test_valid_blob_loads(store, clock):
    store.set(JOURNEY_STORAGE_KEY, json.dumps({
        "mode": "complete", "selected_path_id": "emerald", "stages_completed": 3,
        "mastered_path_ids": ["ruby", "emerald"], "updated_at": 1700000000000,
    }))
    journey = JourneyEngine(store, clock=clock)
    state = journey.snapshot()
    assert state.mode is JourneyMode.COMPLETE
    assert state.mastered_path_ids == ["ruby", "emerald"]
    assert state.updated_at == 1700000000000


def test_write_failure_keeps_memory_state(journey, store):
    with patch.object(store, "set", return_value=False):
        assert journey.select_path("ruby") is True
        assert journey.complete_stage() is True
    assert journey.snapshot().stages_completed == 1
    assert store.get(JOURNEY_STORAGE_KEY) is None


def test_read_failure_starts_fresh(store, clock):
    store.set(JOURNEY_STORAGE_KEY, '{"mode": "bogus"}')
    with patch.object(store, "get", return_value=None):
        journey = JourneyEngine(store, clock=clock)
    assert journey.snapshot().mode is JourneyMode.SELECTING

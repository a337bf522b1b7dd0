"""Journey progression: path selection, stage completion and mastery.

The engine owns a single ``JourneyState``. The only ways to change it are the
transitions below; each successful one writes the whole state back to the
store. Rejected transitions return False and leave everything untouched.
"""
import logging
from dataclasses import replace

from abundance_flow.catalog import DEFAULT_CATALOG, PathCatalog
from abundance_flow.clock import Clock
from abundance_flow.models import TOTAL_STAGES, CurrentTask, JourneyMode, JourneyState, Path, SlotState
from abundance_flow.schemas import JourneyBlob
from abundance_flow.storage import KeyValueStore, load_blob, save_blob

logger = logging.getLogger(__name__)

JOURNEY_STORAGE_KEY = "abundance_journey_v1"


def get_slot_state(path_id: str, state: JourneyState) -> SlotState:
    if path_id in state.mastered_path_ids:
        return SlotState.MASTERED
    if path_id == state.selected_path_id:
        return SlotState.ACTIVE
    if state.mode is JourneyMode.ACTIVE:
        return SlotState.LOCKED
    return SlotState.AVAILABLE


class JourneyEngine:
    def __init__(self, store: KeyValueStore, catalog: PathCatalog | None = None, clock: Clock | None = None):
        self.store = store
        self.catalog = catalog or DEFAULT_CATALOG
        self.clock = clock or Clock()
        self._state = self._load()

    # --- persistence ---

    def _load(self) -> JourneyState:
        blob = load_blob(self.store, JOURNEY_STORAGE_KEY, JourneyBlob, context={"path_ids": self.catalog.ids()})
        if blob is None:
            return JourneyState()
        return blob.to_state()

    def _commit(self, state: JourneyState) -> None:
        state.updated_at = int(self.clock.now().timestamp() * 1000)
        self._state = state
        if not save_blob(self.store, JOURNEY_STORAGE_KEY, JourneyBlob.from_state(state)):
            logger.warning("Journey state not saved; keeping in-memory state")

    # --- transitions ---

    def select_path(self, path_id: str) -> bool:
        state = self._state
        if path_id not in self.catalog:
            logger.warning("Cannot select %r: unknown path", path_id)
            return False
        if path_id in state.mastered_path_ids:
            logger.warning("Cannot select %r: already mastered", path_id)
            return False
        if state.mode is JourneyMode.ACTIVE:
            if state.selected_path_id == path_id:
                return True
            logger.warning("Cannot select %r: %r is in progress", path_id, state.selected_path_id)
            return False

        self._commit(replace(
            state,
            mode=JourneyMode.ACTIVE,
            selected_path_id=path_id,
            stages_completed=0,
            mastered_path_ids=list(state.mastered_path_ids),
        ))
        return True

    def complete_stage(self) -> bool:
        state = self._state
        if state.mode is not JourneyMode.ACTIVE or state.selected_path_id is None:
            logger.warning("Cannot complete stage: no active path")
            return False

        completed = state.stages_completed + 1
        mastered = list(state.mastered_path_ids)
        if completed >= TOTAL_STAGES:
            if state.selected_path_id not in mastered:
                mastered.append(state.selected_path_id)
            self._commit(replace(
                state,
                mode=JourneyMode.COMPLETE,
                stages_completed=TOTAL_STAGES,
                mastered_path_ids=mastered,
            ))
        else:
            self._commit(replace(state, stages_completed=completed, mastered_path_ids=mastered))
        return True

    def reset_to_selection(self) -> None:
        """Abandon the current path (or acknowledge a completed one)."""
        self._commit(JourneyState(mastered_path_ids=list(self._state.mastered_path_ids)))

    def clear_all_progress(self) -> None:
        """Full reset, including mastery history."""
        self._commit(JourneyState())

    # --- queries ---

    def snapshot(self) -> JourneyState:
        return replace(self._state, mastered_path_ids=list(self._state.mastered_path_ids))

    def slot_state(self, path_id: str) -> SlotState:
        return get_slot_state(path_id, self._state)

    def slots(self) -> list[tuple[Path, SlotState]]:
        return [(path, self.slot_state(path.id)) for path in self.catalog]

    def selected_path(self) -> Path | None:
        if self._state.selected_path_id is None:
            return None
        return self.catalog.get(self._state.selected_path_id)

    def current_task(self) -> CurrentTask | None:
        state = self._state
        if state.mode is not JourneyMode.ACTIVE or state.selected_path_id is None:
            return None
        stage = state.stages_completed + 1
        return CurrentTask(
            path_id=state.selected_path_id,
            stage=stage,
            text=self.catalog.stage_text(state.selected_path_id, stage),
        )

    def all_paths_mastered(self) -> bool:
        return len(self._state.mastered_path_ids) >= len(self.catalog)

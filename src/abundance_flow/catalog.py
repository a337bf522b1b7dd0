"""The static path catalog, loaded once from the bundled content file."""
import json
from pathlib import Path as FilePath

from abundance_flow.models import TOTAL_PATHS, TOTAL_STAGES, Path

CONTENT_DIR = FilePath(__file__).parent / "content"


class CatalogError(ValueError):
    """Raised when the bundled path content is malformed."""


class PathCatalog:
    """Immutable, ordered collection of the selectable paths."""

    def __init__(self, paths):
        self._paths = tuple(paths)
        self._by_id = {p.id: p for p in self._paths}

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self):
        return iter(self._paths)

    def __contains__(self, path_id) -> bool:
        return path_id in self._by_id

    def get(self, path_id: str) -> Path | None:
        return self._by_id.get(path_id)

    def ids(self) -> list[str]:
        return [p.id for p in self._paths]

    def stage_text(self, path_id: str, stage: int) -> str:
        """Text of the 1-indexed ``stage`` of a path."""
        return self._by_id[path_id].stages[stage - 1]


def parse_paths(data: dict) -> list[Path]:
    """Build Path records from the content document, checking its shape."""
    entries = data.get("paths") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise CatalogError("content must contain a 'paths' list")
    paths = []
    for entry in entries:
        try:
            path = Path(
                id=entry["id"],
                name=entry["name"],
                theme=entry["theme"],
                meaning=entry["meaning"],
                stages=tuple(entry["stages"]),
            )
        except (KeyError, TypeError) as e:
            raise CatalogError(f"malformed path entry {entry!r}") from e
        if len(path.stages) != TOTAL_STAGES:
            raise CatalogError(f"path {path.id!r} has {len(path.stages)} stages, expected {TOTAL_STAGES}")
        paths.append(path)
    ids = [p.id for p in paths]
    if len(ids) != TOTAL_PATHS or len(set(ids)) != TOTAL_PATHS:
        raise CatalogError(f"expected {TOTAL_PATHS} unique paths, got {ids}")
    return paths


def load_catalog(content_path: FilePath = CONTENT_DIR / "paths.json") -> PathCatalog:
    data = json.loads(FilePath(content_path).read_text(encoding="utf-8"))
    return PathCatalog(parse_paths(data))


DEFAULT_CATALOG = load_catalog()

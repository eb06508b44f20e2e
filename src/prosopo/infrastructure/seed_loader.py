"""Load and apply the YAML seed of lookup rows (relative types, source types...)."""

import logging
import os
from pathlib import Path

import yaml

from prosopo.application.ports import CatalogRepository
from prosopo.domain import LOOKUP_TYPES

logger = logging.getLogger(__name__)


def _repo_root() -> Path:
    """Return repo root (parent of src)."""
    return Path(__file__).resolve().parent.parent.parent.parent


def get_seed_path() -> Path:
    """Return path to the lookup seed YAML (SEED_PATH env or seeds/lookups.yaml)."""
    default = _repo_root() / "seeds" / "lookups.yaml"
    path = os.environ.get("SEED_PATH", "").strip()
    if path:
        return Path(path).resolve()
    return default


def load_seed(path: Path | None = None) -> dict[str, list[dict]]:
    """Load seed YAML and return {lookup kind: [row, ...]}. Validates minimal structure."""
    if path is None:
        path = get_seed_path()
    raw = path.read_text(encoding="utf-8")
    seed = yaml.safe_load(raw) or {}
    if not isinstance(seed, dict):
        raise ValueError("Seed YAML must be a dict")
    for kind, rows in seed.items():
        if kind not in LOOKUP_TYPES:
            raise ValueError(f"Unknown lookup kind '{kind}'")
        if not isinstance(rows, list):
            raise ValueError(f"Seed '{kind}' must be a list")
        for i, row in enumerate(rows):
            if isinstance(row, str):
                rows[i] = {"name": row}
            elif not isinstance(row, dict) or not row.get("name"):
                raise ValueError(f"Every '{kind}' row must have a 'name'")
            elif not isinstance(row["name"], str):
                raise ValueError(f"'{kind}' row name must be a string: {row['name']!r}")
    return seed


def apply_seed(repository: CatalogRepository, seed: dict[str, list[dict]]) -> int:
    """Insert seed rows whose name is not present yet. Returns the number inserted.

    References to other lookups are given by name without the `_id` suffix,
    e.g. a source row uses `type_source: book`. Kinds without references are
    applied first so those names resolve.
    """
    inserted = 0
    kinds = sorted(seed, key=lambda k: len(LOOKUP_TYPES[k].refs))
    for kind in kinds:
        cls = LOOKUP_TYPES[kind]
        for row in seed[kind]:
            if repository.find_lookup_by_name(kind, row["name"]) is not None:
                continue
            values = dict(row)
            for field_name, (target, _) in cls.refs.items():
                ref_name = values.pop(field_name.removesuffix("_id"), None)
                if ref_name is None:
                    continue
                target_row = repository.find_lookup_by_name(target, ref_name)
                if target_row is None:
                    raise ValueError(f"'{kind}' row references unknown {target} '{ref_name}'")
                values[field_name] = target_row.id
            repository.add_lookup(cls(**values))
            inserted += 1
    if inserted:
        logger.info("Seeded %d lookup row(s)", inserted)
    return inserted

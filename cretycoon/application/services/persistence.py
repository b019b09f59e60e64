"""Run persistence.

Saves the serializable run state to a JSON file and restores a
``RunContext`` from it, backfilling fields added after the save was made.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from cretycoon import __version__
from cretycoon.core.exceptions import PersistenceError
from cretycoon.core.logging import get_logger
from cretycoon.core.rng import Mulberry32, random_seed, seed_from_string
from cretycoon.core.settings import AppSettings, get_settings
from cretycoon.domain.calculator.lifecycle import ensure_initialized
from cretycoon.domain.calculator.portfolio import resolve_refs
from cretycoon.domain.models.run import RunState

from .listing_factory import generate_listings
from .reference_data import ReferenceData
from .simulation import RunContext

log = get_logger(__name__)


class JsonRunStore:
    """Single-slot run save file."""

    def __init__(self, path: Path | str):
        """Initialize store.

        Args:
            path: JSON file the run is saved to. Parent directories are
                created on first save.
        """
        self.path = Path(path)

    def load(self) -> Optional[RunState]:
        """Read the saved run.

        Returns:
            RunState, or None if nothing has been saved

        Raises:
            PersistenceError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read saved run {self.path}: {e}") from e

        # Bare state documents are accepted as well as the wrapped form
        raw = payload.get("run", payload) if isinstance(payload, dict) else payload
        try:
            state = RunState.model_validate(raw)
        except ValidationError as e:
            raise PersistenceError(f"Saved run {self.path} is invalid: {e}") from e

        log.info("run_loaded", path=str(self.path), year=state.year, properties=len(state.properties))
        return state

    def save(self, state: RunState) -> Path:
        payload = {
            "metadata": {
                "savedAt": datetime.now().isoformat(),
                "version": __version__,
            },
            "run": state.to_json_dict(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log.error("run_save_failed", path=str(self.path), error=str(e))
            raise PersistenceError(f"Cannot write saved run {self.path}: {e}") from e

        log.info("run_saved", path=str(self.path), year=state.year)
        return self.path

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        log.info("run_cleared", path=str(self.path))


def save_run(ctx: RunContext, store: JsonRunStore) -> Path:
    """Persist a live run including its RNG position."""
    return store.save(ctx.snapshot())


def backfill_run(ctx: RunContext) -> int:
    """Initialize lease and maturity on stabilized properties that lack them.

    Returns:
        Number of properties changed
    """
    state, products = ctx.state, ctx.reference.products_by_id
    changed = 0
    for prop in state.properties:
        neighborhood, product = resolve_refs(state, products, prop)
        if ensure_initialized(prop, neighborhood, product, ctx.rng, state.year):
            changed += 1
    if changed:
        log.info("run_backfilled", properties=changed)
    return changed


def _resume_rng(state: RunState, settings: AppSettings) -> Mulberry32:
    if state.rng_state is not None:
        return Mulberry32(state.rng_state)
    if settings.seed:
        return Mulberry32(seed_from_string(settings.seed))
    if state.seed is not None:
        return Mulberry32(state.seed)
    return Mulberry32(random_seed())


def restore_run(
    state: RunState,
    reference: ReferenceData,
    settings: Optional[AppSettings] = None,
) -> RunContext:
    """Rebuild a runnable context from a loaded state.

    Args:
        state: Loaded run state (owned by the returned context)
        reference: Reference data
        settings: Used to reseed when the save carries no RNG position

    Returns:
        RunContext ready for the next command or year
    """
    settings = settings or get_settings()
    ctx = RunContext(state=state, reference=reference, rng=_resume_rng(state, settings))

    if not state.neighborhoods:
        state.neighborhoods = [
            n.model_copy(deep=True, update={"demand": n.base_demand})
            for n in reference.neighborhoods
        ]

    backfill_run(ctx)

    if not state.listings:
        state.listings = generate_listings(state, reference, ctx.rng)

    log.info("run_restored", year=state.year, cash=state.cash, properties=len(state.properties))
    return ctx

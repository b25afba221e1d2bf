"""Reference data cache for shifts and branches."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ...core.exceptions import FetchError
from ...models.schemas import Branch, ShiftDefinition
from ..api.client import StudyHallApiClient


@dataclass(frozen=True)
class Catalog:
    """Immutable snapshot of the reference data."""

    shifts: Tuple[ShiftDefinition, ...] = ()
    branches: Tuple[Branch, ...] = ()
    shift_index: Dict[int, ShiftDefinition] = field(
        default_factory=dict, repr=False, compare=False
    )
    branch_index: Dict[int, Branch] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def build(cls, shifts: List[ShiftDefinition], branches: List[Branch]) -> "Catalog":
        return cls(
            shifts=tuple(shifts),
            branches=tuple(branches),
            shift_index={s.id: s for s in shifts},
            branch_index={b.id: b for b in branches},
        )

    def shift(self, shift_id: int) -> Optional[ShiftDefinition]:
        return self.shift_index.get(shift_id)

    def branch(self, branch_id: int) -> Optional[Branch]:
        return self.branch_index.get(branch_id)


EMPTY_CATALOG = Catalog()


class CatalogCache:
    """
    Loads the shift and branch catalogs once per screen activation.

    Renewal sessions read from the cached snapshot instead of fetching the
    catalogs again for every selection change.
    """

    def __init__(self, api: StudyHallApiClient):
        self._api = api
        self._catalog: Catalog = EMPTY_CATALOG
        self._loaded = False

    async def load(self) -> Catalog:
        """
        Fetch shifts and branches and replace the cache wholesale.

        Returns:
            The new catalog snapshot

        Raises:
            FetchError: If either catalog could not be fetched; the cache is left empty
        """
        try:
            shifts, branches = await asyncio.gather(
                self._api.get_schedules(), self._api.get_branches()
            )
        except FetchError:
            self._catalog = EMPTY_CATALOG
            self._loaded = False
            logger.error("Failed to load shift/branch catalogs, catalogs cleared")
            raise

        self._catalog = Catalog.build(shifts, branches)
        self._loaded = True
        logger.info(f"Catalog loaded: {len(shifts)} shifts, {len(branches)} branches")
        return self._catalog

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def shifts(self) -> Tuple[ShiftDefinition, ...]:
        return self._catalog.shifts

    @property
    def branches(self) -> Tuple[Branch, ...]:
        return self._catalog.branches

    def shift(self, shift_id: int) -> Optional[ShiftDefinition]:
        """Look up a shift definition by id."""
        return self._catalog.shift(shift_id)

    def branch(self, branch_id: int) -> Optional[Branch]:
        """Look up a branch by id."""
        return self._catalog.branch(branch_id)

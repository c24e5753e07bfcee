"""Batch orchestration of part searches in small concurrent groups."""

import asyncio
from typing import Any, Callable, Iterable, List, Mapping, Set, Union

from parts_finder.models.data_models import BatchOutcome, DamageItem, PartSearchResult
from parts_finder.processor.catalog import DEFAULT_ESTIMATED_PRICE
from parts_finder.pipeline.resolver import fallback_only_result

DamageInput = Union[DamageItem, Mapping[str, Any]]


def as_damage_item(damage: DamageInput) -> DamageItem:
    """Accept a DamageItem or a ``{"damage_id", "part_name"}`` mapping."""
    if isinstance(damage, DamageItem):
        return damage
    return DamageItem(damage_id=str(damage["damage_id"]), part_name=str(damage["part_name"]))


class Deadline:
    """
    Time budget for a batch call.

    ``wait`` completes when the budget is spent. The sleeper is injectable so
    tests can fire the deadline explicitly instead of waiting on real time.
    """

    def __init__(self, seconds: float, sleeper: Callable[[float], Any] = asyncio.sleep):
        self.seconds = seconds
        self._sleep = sleeper

    async def wait(self) -> None:
        await self._sleep(self.seconds)


def build_degraded_results(
    damages: Iterable[DamageInput],
    year: Union[str, int],
    make: str,
    model: str,
    default_price: float = DEFAULT_ESTIMATED_PRICE,
) -> List[PartSearchResult]:
    """Estimate-only results for every requested part, with no network I/O."""
    results = []
    for damage in damages:
        item = as_damage_item(damage)
        results.append(
            fallback_only_result(item.part_name, item.damage_id, year, make, model, default_price)
        )
    return results


class BatchOrchestrator:
    """
    Fans a list of damaged parts out to the cache coordinator.

    Parts are searched in groups of ``batch_size``; a group starts only after
    the previous one has settled. One part failing never affects the others.
    """

    def __init__(self, finder, batch_size: int = 3, logger=None):
        """
        Args:
            finder: PartsCacheCoordinator (or any object with ``async find_parts``)
            batch_size: Parts searched concurrently per group
            logger: Optional structured logger
        """
        self.finder = finder
        self.batch_size = batch_size
        self.logger = logger
        self._abandoned: Set[asyncio.Future] = set()

    async def find_all_parts(
        self,
        damages: Iterable[DamageInput],
        year: Union[str, int],
        make: str,
        model: str,
    ) -> List[PartSearchResult]:
        """
        Search every part, group by group.

        Returns:
            Successful results in submission order; failed parts are dropped
        """
        items = [as_damage_item(damage) for damage in damages]
        results: List[PartSearchResult] = []

        for group_index, start in enumerate(range(0, len(items), self.batch_size)):
            group = items[start:start + self.batch_size]
            if self.logger:
                self.logger.batch_group(group=group_index, size=len(group))

            outcomes = await asyncio.gather(
                *(
                    self.finder.find_parts(item.part_name, year, make, model, item.damage_id)
                    for item in group
                ),
                return_exceptions=True,
            )

            for item, outcome in zip(group, outcomes):
                if isinstance(outcome, BaseException):
                    if self.logger:
                        self.logger.part_failed(part=item.part_name, error=repr(outcome))
                    continue
                results.append(outcome)

        if self.logger:
            self.logger.log("batch_complete", requested=len(items), resolved=len(results))
        return results

    async def find_all_parts_within(
        self,
        damages: Iterable[DamageInput],
        year: Union[str, int],
        make: str,
        model: str,
        deadline: Deadline,
    ) -> BatchOutcome:
        """
        Run ``find_all_parts`` against a deadline.

        If the deadline fires first the outcome is ``timed_out`` with no
        results. The batch is not cancelled: its in-flight fetches finish and
        still populate the cache for later callers.
        """
        batch = asyncio.ensure_future(self.find_all_parts(damages, year, make, model))
        timer = asyncio.ensure_future(deadline.wait())

        try:
            done, _ = await asyncio.wait({batch, timer}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            timer.cancel()
            self._detach(batch)
            raise

        if batch in done:
            timer.cancel()
            return BatchOutcome(results=batch.result(), timed_out=False)

        if self.logger:
            self.logger.log("batch_timeout", timeout=deadline.seconds)
        self._detach(batch)
        return BatchOutcome(results=[], timed_out=True)

    def _detach(self, task: asyncio.Future) -> None:
        """Keep a reference to an abandoned batch until it finishes on its own."""
        if task.done():
            return
        self._abandoned.add(task)
        task.add_done_callback(self._finish_abandoned)

    def _finish_abandoned(self, task: asyncio.Future) -> None:
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None and self.logger:
            self.logger.log("abandoned_batch_failed", error=repr(task.exception()))

    @property
    def pending_abandoned(self) -> int:
        return len(self._abandoned)

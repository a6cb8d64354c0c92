"""Region failover cursor and the error hooks that drive it.

One RegionFailoverState exists per logical request. It starts on the
primary region (index -1) and only learns its fallback region list the
first time a throttled response asks for failover. The hooks returned by
``transient_error_handler`` and ``throttle_error_handler`` are typed on
RegionFailoverState, so executors built with them know the state type
up front.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from volley.resilience.classifiers import (
    ThrottleClassifier,
    TransientFaultClassifier,
    TransportFaultClassifier,
)
from volley.resilience.errors import RegionsExhaustedError

PRIMARY_REGION_INDEX = -1
MAX_ATTEMPT = 0xFFFF

DEFAULT_FAILOVER_REGIONS: tuple[str, ...] = ("West US", "East US")


class RegionFailoverState:
    """Mutable retry cursor for a single request.

    Attributes:
        attempt: Retries so far, incremented on every retry. Saturates
            at 65535.
        current_region_index: Index into the region list, -1 while on
            the primary region.
        last_error: The error that caused the most recent retry.
    """

    def __init__(self) -> None:
        self.attempt = 0
        self.current_region_index = PRIMARY_REGION_INDEX
        self.last_error: BaseException | None = None
        self._regions: list[str] | None = None

    def __repr__(self) -> str:
        return (
            f"RegionFailoverState(attempt={self.attempt}, "
            f"current_region_index={self.current_region_index}, regions={self._regions!r})"
        )

    @property
    def has_region_list(self) -> bool:
        return self._regions is not None

    @property
    def regions(self) -> tuple[str, ...]:
        return tuple(self._regions or ())

    @property
    def is_primary_region(self) -> bool:
        return self.current_region_index == PRIMARY_REGION_INDEX

    @property
    def current_region(self) -> str:
        """The fallback region currently targeted.

        Raises:
            RegionsExhaustedError: No region list is set or the cursor is
                past its end.
        """
        return self._check_regions()[self.current_region_index]

    def set_region_sequence_list(self, regions: Sequence[str]) -> None:
        """Store a private copy of the ordered fallback regions."""
        self._regions = list(regions)

    def will_retry(self, error: BaseException) -> None:
        """Record a retry against the same region."""
        self._bump_attempt()
        self.last_error = error

    def will_retry_next_region(self, error: BaseException) -> None:
        """Advance to the next fallback region and record the retry.

        Raises:
            RegionsExhaustedError: The cursor moved past the last region.
        """
        self.current_region_index += 1
        self._bump_attempt()
        self.last_error = error
        self._check_regions()

    def _bump_attempt(self) -> None:
        if self.attempt < MAX_ATTEMPT:
            self.attempt += 1

    def _check_regions(self) -> list[str]:
        """Return the region list if the cursor points into it."""
        regions = self._regions
        region_count = len(regions) if regions is not None else 0
        if regions is None or not 0 <= self.current_region_index < region_count:
            raise RegionsExhaustedError(
                attempts=self.attempt, region_count=region_count
            ) from IndexError("Region is out of index")
        return regions


FailoverHook = Callable[[Exception, RegionFailoverState | None], None]


def transient_error_handler(
    classifier: TransientFaultClassifier | None = None,
) -> FailoverHook:
    """Build an error hook that counts same-region retries of transient errors."""
    detector = classifier or TransportFaultClassifier()

    def hook(error: Exception, state: RegionFailoverState | None) -> None:
        if state is not None and detector.is_transient(error):
            state.will_retry(error)

    return hook


def throttle_error_handler(
    regions: Sequence[str] = DEFAULT_FAILOVER_REGIONS,
    classifier: TransientFaultClassifier | None = None,
) -> FailoverHook:
    """Build an error hook that fails over to the next region on throttling.

    The region list is copied into the state the first time the hook
    fires for it.
    """
    detector = classifier or ThrottleClassifier()
    fallback = tuple(regions)

    def hook(error: Exception, state: RegionFailoverState | None) -> None:
        if state is None or not detector.is_transient(error):
            return
        if not state.has_region_list:
            state.set_region_sequence_list(fallback)
        state.will_retry_next_region(error)

    return hook

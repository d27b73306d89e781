"""
Client State Store

Per-client cache of the locker singleton and every country row, plus the
transient UI state the admin panel and public page render from. One instance
per client, passed explicitly to whatever needs it.

Writes come from three places:
- apply_mutation_result: the row returned by a successful admin update
- ingest_realtime_event: a pushed change from the realtime feed
- replace_all: a full snapshot (startup fetch and the polling fallback)

Single-entity patches are last-writer-wins by last_updated, so a stale
realtime event arriving after a newer mutation response is ignored.
"""
import itertools
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..schemas.state import CountryStateSchema, LockerStateSchema
from ..services.change_feed import COUNTRY_TABLE, LOCKER_TABLE

logger = logging.getLogger(__name__)

LOCKER = "locker"
COUNTRY = "country"

# Realtime events name the table; callers may also use the short kind
_ENTITY_KINDS = {
    LOCKER: LOCKER,
    LOCKER_TABLE: LOCKER,
    COUNTRY: COUNTRY,
    COUNTRY_TABLE: COUNTRY,
}

TOAST_KINDS = ("success", "error", "info")

_toast_ids = itertools.count(1)


@dataclass(frozen=True)
class Toast:
    kind: str
    message: str
    id: str


@dataclass(frozen=True)
class UiState:
    is_loading: bool = False
    error: Optional[str] = None
    toast: Optional[Toast] = None
    hovered_country: Optional[str] = None


Listener = Callable[["ClientStateStore"], None]
Row = Union[LockerStateSchema, CountryStateSchema]


class ClientStateStore:
    """Observable cache of locker and country state"""

    def __init__(self):
        self.locker_state: Optional[LockerStateSchema] = None
        self.country_states: Dict[str, CountryStateSchema] = {}
        self.ui = UiState()
        self.is_realtime_connected = False
        self._listeners: List[Listener] = []

    # -- observation --------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                logger.debug("Store listener already removed")

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Error in store listener {getattr(listener, '__name__', listener)}: {e}")

    def get_country(self, country_code: str) -> Optional[CountryStateSchema]:
        return self.country_states.get(country_code.upper())

    # -- entity writes ------------------------------------------------------

    @staticmethod
    def _is_stale(current: Optional[Row], incoming: Row) -> bool:
        return current is not None and incoming.last_updated < current.last_updated

    def _patch_locker(self, row: LockerStateSchema) -> bool:
        if self._is_stale(self.locker_state, row) or row == self.locker_state:
            return False
        self.locker_state = row
        return True

    def _patch_country(self, row: CountryStateSchema) -> bool:
        current = self.country_states.get(row.country_code)
        if self._is_stale(current, row) or row == current:
            return False
        self.country_states[row.country_code] = row
        return True

    def apply_mutation_result(self, result: Union[Row, Mapping[str, Any]]) -> bool:
        """
        Apply the row returned by a successful admin update.

        Idempotent: applying the same result twice leaves the store as after once.

        Returns:
            True if the store changed
        """
        if isinstance(result, LockerStateSchema):
            changed = self._patch_locker(result)
        elif isinstance(result, CountryStateSchema):
            changed = self._patch_country(result)
        elif isinstance(result, Mapping) and "country_code" in result:
            changed = self._patch_country(CountryStateSchema.model_validate(result))
        elif isinstance(result, Mapping):
            changed = self._patch_locker(LockerStateSchema.model_validate(result))
        else:
            raise TypeError(f"Unsupported mutation result: {type(result).__name__}")

        if changed:
            self._notify()
        return changed

    def ingest_realtime_event(self, entity_kind: str, new_row: Union[Row, Mapping[str, Any]]) -> bool:
        """
        Patch one entity from a pushed change. Safe with out-of-order or stale rows.

        Args:
            entity_kind: "locker" / "country", or the table name carried by the event

        Returns:
            True if the store changed
        """
        kind = _ENTITY_KINDS.get(entity_kind)
        if kind is None:
            logger.debug(f"Ignoring realtime event for unknown entity kind: {entity_kind}")
            return False

        if kind == LOCKER:
            changed = self._patch_locker(LockerStateSchema.model_validate(new_row))
        else:
            changed = self._patch_country(CountryStateSchema.model_validate(new_row))

        if changed:
            self._notify()
        return changed

    def replace_all(
        self,
        locker_state: Optional[LockerStateSchema],
        country_states: Iterable[CountryStateSchema],
    ) -> bool:
        """
        Replace everything with a fetched snapshot.

        The snapshot is compared by value first; listeners are not notified
        when nothing changed.

        Returns:
            True if the store changed
        """
        new_countries = {c.country_code: c for c in country_states}
        if locker_state == self.locker_state and new_countries == self.country_states:
            return False

        self.locker_state = locker_state
        self.country_states = new_countries
        self._notify()
        return True

    # -- UI state -----------------------------------------------------------

    def _set_ui(self, **changes) -> None:
        updated = replace(self.ui, **changes)
        if updated != self.ui:
            self.ui = updated
            self._notify()

    def set_loading(self, is_loading: bool) -> None:
        self._set_ui(is_loading=is_loading)

    def set_error(self, error: Optional[str]) -> None:
        self._set_ui(error=error)

    def show_toast(self, kind: str, message: str) -> Toast:
        if kind not in TOAST_KINDS:
            raise ValueError(f"Toast kind must be one of {TOAST_KINDS}")
        toast = Toast(kind=kind, message=message, id=f"toast-{next(_toast_ids)}")
        self._set_ui(toast=toast)
        return toast

    def dismiss_toast(self) -> None:
        self._set_ui(toast=None)

    def set_hovered_country(self, country_code: Optional[str]) -> None:
        self._set_ui(hovered_country=country_code.upper() if country_code else None)

    def set_realtime_connected(self, connected: bool) -> None:
        if connected != self.is_realtime_connected:
            self.is_realtime_connected = connected
            self._notify()

    # -- fetching -----------------------------------------------------------

    async def refresh(self, api) -> bool:
        """
        Fetch the full snapshot through `api` (GlobalUnlockApi) and replace_all.

        Errors are captured into ui.error rather than raised.

        Returns:
            True if the store changed
        """
        self.set_loading(True)
        self.set_error(None)
        try:
            snapshot = await api.fetch_state()
            return self.replace_all(snapshot.locker, snapshot.countries)
        except Exception as e:
            logger.error(f"Error fetching state: {e}")
            self.set_error(getattr(e, "message", None) or str(e) or "Failed to load data")
            return False
        finally:
            self.set_loading(False)

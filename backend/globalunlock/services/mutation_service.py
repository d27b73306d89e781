"""
Mutation Service

The only writer of locker_state and country_states. Each operation runs the
same sequence:

    authorize -> validate -> fetch -> derive -> atomic update -> publish -> audit

Authority, validation, not-found and unlock-complete failures return before
any write. A failed write aborts before publication and audit. Publication and
audit failures after commit are logged and never reach the caller.

Concurrent writes to the same row are last-committed-wins: the read and the
single-row UPDATE are not wrapped in a stronger isolation level.
"""
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..dependencies.auth import CallerIdentity
from ..errors import (
    Forbidden,
    InvalidRequest,
    NotFound,
    PersistenceError,
    Unauthorized,
    UnlockComplete,
)
from ..models import CountryState, LockerState
from ..models.locker_state import utcnow
from ..schemas.state import CountryStateSchema, LockerStateSchema
from ..utils.log import get_logger, log_mutation_event
from .audit import (
    COUNTRY_INCREMENT,
    COUNTRY_SET,
    ENERGY_INCREMENT,
    ENERGY_SET,
    AuditWriter,
    describe_country_change,
    describe_energy_change,
)
from .change_feed import COUNTRY_TABLE, LOCKER_TABLE, ChangeFeed
from .unlock_rules import (
    GLOBAL_ENERGY_SUBJECT,
    MAX_ACTIVATION_COUNT,
    clamp_energy,
    crosses_unlock_threshold,
    glow_band_of,
)
from .update_validation import (
    ValidationError,
    validate_country_update,
    validate_energy_update,
)

logger = get_logger(__name__)


class MutationService:
    """Applies admin country and energy updates against persisted state."""

    def __init__(
        self,
        change_feed: Optional[ChangeFeed] = None,
        audit_writer: Optional[AuditWriter] = None,
        locker_id: Optional[int] = None,
    ):
        self.change_feed = change_feed
        self.audit_writer = audit_writer or AuditWriter()
        self.locker_id = locker_id if locker_id is not None else settings.LOCKER_ID

    # -- shared steps -------------------------------------------------------

    def _authorize(self, caller: Optional[CallerIdentity], subject: str) -> str:
        if caller is None:
            log_mutation_event(logger, "authorize", None, subject, ok=False, extra={"reason": "no_session"})
            raise Unauthorized()
        if not caller.is_admin:
            log_mutation_event(
                logger, "authorize", caller.email, subject, ok=False,
                extra={"reason": "not_admin", "role": caller.role},
            )
            raise Forbidden()
        return caller.email or caller.subject

    def _apply_row_update(self, db: Session, model, criterion, values: dict, admin: str, subject: str) -> None:
        """Single-row conditional UPDATE + commit. Zero affected rows is a distinct persistence failure."""
        try:
            affected = (
                db.query(model)
                .filter(criterion)
                .update(values, synchronize_session=False)
            )
            if affected == 0:
                db.rollback()
                log_mutation_event(
                    logger, "update", admin, subject, ok=False,
                    extra={"reason": PersistenceError.NO_ROWS_AFFECTED},
                )
                raise PersistenceError(
                    "Update failed - no data returned",
                    reason=PersistenceError.NO_ROWS_AFFECTED,
                )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Error updating {model.__tablename__}: admin={admin}, subject={subject}, error={e}",
                exc_info=True,
            )
            raise PersistenceError(reason=PersistenceError.WRITE_FAILED) from e

    def _publish(self, table: str, row: dict) -> None:
        if self.change_feed is None:
            return
        try:
            self.change_feed.publish(table, row)
        except Exception:
            # The write is committed; clients catch up on the next event or poll
            logger.exception(f"Failed to publish {table} change")

    # -- country ------------------------------------------------------------

    def apply_country_update(
        self,
        db: Session,
        payload: Mapping[str, Any],
        caller: Optional[CallerIdentity],
    ) -> CountryState:
        """
        Increment or set a country's activation count.

        Returns:
            The committed CountryState row

        Raises:
            Unauthorized, Forbidden, InvalidRequest, NotFound, PersistenceError
        """
        raw_code = payload.get("countryCode") if isinstance(payload, Mapping) else None
        admin = self._authorize(caller, str(raw_code))

        try:
            request = validate_country_update(payload)
        except ValidationError as e:
            log_mutation_event(logger, "validate", admin, str(raw_code), ok=False, extra={"error": e.message})
            raise InvalidRequest(e.message) from e

        code = request.country_code
        try:
            current = db.query(CountryState).filter(CountryState.country_code == code).first()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error fetching country state: admin={admin}, country={code}, error={e}")
            raise PersistenceError("Failed to fetch current state") from e
        if current is None:
            log_mutation_event(logger, "fetch", admin, code, ok=False, extra={"reason": "unknown_country"})
            raise NotFound("Country not found")

        previous_count = current.activation_count
        if request.mode == "increment":
            new_count = previous_count + request.value
        else:
            new_count = request.value
        if new_count > MAX_ACTIVATION_COUNT:
            log_mutation_event(
                logger, "derive", admin, code, ok=False,
                extra={"activation_count": previous_count, "attempted_increment": request.value},
            )
            raise InvalidRequest(f"Activation count cannot exceed {MAX_ACTIVATION_COUNT}.")
        new_band = glow_band_of(new_count)

        self._apply_row_update(
            db,
            CountryState,
            CountryState.country_code == code,
            {
                "activation_count": new_count,
                "glow_band": new_band,
                "last_updated": utcnow(),
            },
            admin,
            code,
        )

        updated = db.query(CountryState).filter(CountryState.country_code == code).first()
        if updated is None:
            raise PersistenceError("Update failed - no data returned", reason=PersistenceError.NO_ROWS_AFFECTED)

        log_mutation_event(
            logger, "update", admin, code, ok=True,
            extra={
                "mode": request.mode,
                "value": request.value,
                "activation_count": [previous_count, new_count],
                "glow_band": new_band,
            },
        )

        self._publish(COUNTRY_TABLE, CountryStateSchema.model_validate(updated).model_dump(mode="json"))

        self.audit_writer.record(
            db,
            admin_email=admin,
            action_type=COUNTRY_INCREMENT if request.mode == "increment" else COUNTRY_SET,
            subject=code,
            delta_or_value=describe_country_change(request.mode, request.value),
            note=request.note,
        )
        return updated

    # -- energy -------------------------------------------------------------

    def apply_energy_update(
        self,
        db: Session,
        payload: Mapping[str, Any],
        caller: Optional[CallerIdentity],
    ) -> LockerState:
        """
        Increment or set global energy, flipping the unlock flag the first time 100% is reached.

        Returns:
            The committed LockerState row

        Raises:
            Unauthorized, Forbidden, InvalidRequest, UnlockComplete, NotFound, PersistenceError
        """
        subject = GLOBAL_ENERGY_SUBJECT
        admin = self._authorize(caller, subject)

        try:
            request = validate_energy_update(payload)
        except ValidationError as e:
            log_mutation_event(logger, "validate", admin, subject, ok=False, extra={"error": e.message})
            raise InvalidRequest(e.message) from e

        try:
            current = db.query(LockerState).filter(LockerState.id == self.locker_id).first()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error fetching locker state: admin={admin}, error={e}")
            raise PersistenceError("Failed to fetch current state") from e
        if current is None:
            logger.error(f"Locker state not found: admin={admin}, locker_id={self.locker_id}")
            raise NotFound("Locker state not found")

        # Re-checked here: the locker may have unlocked after the client validated
        if request.mode == "increment" and current.is_unlocked:
            log_mutation_event(
                logger, "unlock_complete", admin, subject, ok=False,
                extra={
                    "current_percentage": current.energy_percentage,
                    "attempted_increment": request.value,
                },
            )
            raise UnlockComplete()

        previous_percentage = current.energy_percentage
        was_unlocked = current.is_unlocked
        if request.mode == "increment":
            new_percentage = clamp_energy(previous_percentage + request.value)
        else:
            new_percentage = request.value

        should_unlock = crosses_unlock_threshold(previous_percentage, new_percentage) and not was_unlocked

        self._apply_row_update(
            db,
            LockerState,
            LockerState.id == self.locker_id,
            {
                "energy_percentage": new_percentage,
                "is_unlocked": should_unlock or was_unlocked,
                "last_updated": utcnow(),
            },
            admin,
            subject,
        )

        updated = db.query(LockerState).filter(LockerState.id == self.locker_id).first()
        if updated is None:
            raise PersistenceError("Update failed - no data returned", reason=PersistenceError.NO_ROWS_AFFECTED)

        log_mutation_event(
            logger, "update", admin, subject, ok=True,
            extra={
                "mode": request.mode,
                "value": request.value,
                "energy_percentage": [previous_percentage, new_percentage],
                "is_unlocked": updated.is_unlocked,
            },
        )
        if should_unlock:
            log_mutation_event(
                logger, "unlock_transition", admin, subject, ok=True,
                extra={"energy_percentage": new_percentage},
            )

        self._publish(LOCKER_TABLE, LockerStateSchema.model_validate(updated).model_dump(mode="json"))

        self.audit_writer.record(
            db,
            admin_email=admin,
            action_type=ENERGY_INCREMENT if request.mode == "increment" else ENERGY_SET,
            subject=subject,
            delta_or_value=describe_energy_change(request.mode, request.value),
            note=request.note,
        )
        return updated

"""
Weighing transaction use case.

Drives one truck through the console:
1. Capture on a stable (or manually entered) weight
2. Snapshot the platform camera
3. Identify the license plate
4. Look up an open ticket for the plate
5. Inbound draft (new ticket) or outbound draft (close ticket)
6. Confirm (persist, print) or cancel
"""

import uuid
from datetime import datetime, timezone

from fastapi.concurrency import run_in_threadpool

from weighstation.application.ledger import PersistenceError, TicketLedger
from weighstation.application.weight import WeightMonitor
from weighstation.core.logging import get_logger, set_transaction_id
from weighstation.domain.models import (
    MaterialType,
    RecognitionResult,
    Ticket,
    TicketStatus,
    TransactionDraft,
    TransactionState,
)
from weighstation.domain.services import PlateTextNormalizer, TicketPricing
from weighstation.infrastructure.devices.camera import CameraError, FrameSource
from weighstation.infrastructure.devices.printer import TicketPrinter
from weighstation.infrastructure.ml.identifier import PlateIdentifier
from weighstation.infrastructure.storage.storage import ImageStorage, StorageError

logger = get_logger(__name__)

DRAFT_STATES = (TransactionState.INBOUND_DRAFT, TransactionState.OUTBOUND_DRAFT)


class NotStableError(Exception):
    """Raised when a capture is requested while the scale is in motion."""

    pass


class TransactionStateError(Exception):
    """Raised when an operation does not fit the current transaction state."""

    pass


class TransactionController:
    """
    State machine for weighing transactions.

    IDLE -> RESOLVING -> INBOUND_DRAFT | OUTBOUND_DRAFT -> IDLE

    Only one transaction runs at a time. The scale keeps feeding the
    weight monitor throughout, so the outbound weight is the live weight
    at confirmation while the inbound weight is the one captured.

    Example:
        controller = TransactionController(ledger, monitor, identifier, camera, storage)
        draft = await controller.capture()
        ticket = await controller.confirm()
    """

    def __init__(
        self,
        ledger: TicketLedger,
        monitor: WeightMonitor,
        identifier: PlateIdentifier,
        camera: FrameSource,
        storage: ImageStorage,
        printer: TicketPrinter | None = None,
        pricing: TicketPricing | None = None,
        default_material: str = MaterialType.MIXED_METAL.value,
    ):
        """
        Initialize controller.

        Args:
            ledger: Ticket ledger.
            monitor: Current weight and stability.
            identifier: License plate identifier.
            camera: Platform camera.
            storage: Image storage for snapshots.
            printer: Receipt printer for closed tickets.
            pricing: Net weight and cost calculator.
            default_material: Material preselected on inbound drafts.
        """
        self._ledger = ledger
        self._monitor = monitor
        self._identifier = identifier
        self._camera = camera
        self._storage = storage
        self._printer = printer
        self._pricing = pricing or TicketPricing()
        self._default_material = MaterialType(default_material).value
        self._normalizer = PlateTextNormalizer()

        self._draft: TransactionDraft | None = None
        self._committing = False

    @property
    def state(self) -> TransactionState:
        if self._draft is None:
            return TransactionState.IDLE
        return self._draft.state

    @property
    def draft(self) -> TransactionDraft | None:
        return self._draft

    @property
    def pricing(self) -> TicketPricing:
        return self._pricing

    async def capture(self) -> TransactionDraft:
        """
        Start a transaction on the current weight.

        Returns:
            TransactionDraft: Inbound or outbound draft awaiting confirmation.

        Raises:
            TransactionStateError: If a transaction is already running.
            NotStableError: If the scale is in motion and manual entry is off.
            CameraError: If no frame could be captured.
        """
        if self._draft is not None:
            raise TransactionStateError(
                f"A transaction is already in progress ({self.state.value})"
            )

        status = self._monitor.status()
        if not status.is_usable:
            logger.info("capture_rejected", reason="scale_unstable", weight=status.weight)
            raise NotStableError(
                "Scale is unstable. Wait for the STABLE indicator or switch to manual entry."
            )

        captured_at = _now()
        draft = TransactionDraft(
            transaction_id=str(uuid.uuid4()),
            state=TransactionState.RESOLVING,
            captured_weight=status.weight,
            captured_at=captured_at,
            captured_image="",
            material_type=self._default_material,
        )
        self._draft = draft
        set_transaction_id(draft.transaction_id)

        logger.info(
            "capture_started",
            weight=draft.captured_weight,
            manual=status.manual,
        )

        try:
            frame = await run_in_threadpool(self._camera.snapshot)
            draft.captured_image = await self._store_image(frame, None, "inbound", captured_at)

            recognition = await self._identify(frame)
            draft.license_plate = recognition.license_plate
            draft.confidence = recognition.confidence

            self._route(draft)
        except Exception as e:
            # Never leave the console stuck in RESOLVING
            logger.error("capture_failed", error=str(e), error_type=type(e).__name__)
            self._finish()
            raise

        return draft

    def update_draft(
        self,
        license_plate: str | None = None,
        material_type: str | None = None,
        company_name: str | None = None,
    ) -> TransactionDraft:
        """
        Apply operator corrections to the current draft.

        A corrected plate re-runs the open-ticket lookup, so keying in the
        plate of a truck that weighed in earlier turns the draft outbound.

        Raises:
            TransactionStateError: If there is no draft.
            ValueError: If the material is not one of MaterialType.
        """
        draft = self._require_draft()

        if material_type is not None:
            draft.material_type = MaterialType(material_type).value
        if company_name is not None:
            draft.company_name = company_name.strip() or None
        if license_plate is not None:
            draft.license_plate = self._normalizer.to_plate(license_plate)
            self._route(draft)

        logger.info(
            "draft_updated",
            state=draft.state.value,
            plate=draft.license_plate,
            material=draft.material_type,
        )
        return draft

    async def confirm(self) -> Ticket:
        """
        Commit the current draft.

        Inbound drafts create an OPEN ticket; outbound drafts close the
        matched ticket on the live weight and print the receipt.

        Returns:
            Ticket: The stored ticket.

        Raises:
            TransactionStateError: If there is no draft.
            PersistenceError: If the ticket could not be saved; the draft
                is kept so the operator can retry or acknowledge the loss.
        """
        draft = self._require_draft()
        set_transaction_id(draft.transaction_id)
        self._committing = True
        try:
            if draft.state == TransactionState.INBOUND_DRAFT:
                ticket = self._build_inbound(draft)
            else:
                ticket = await self._build_outbound(draft)
            await self._ledger.append(ticket)
        except PersistenceError:
            draft.persistence_failed = True
            logger.error("transaction_not_saved", state=draft.state.value)
            raise
        finally:
            self._committing = False

        logger.info(
            "transaction_confirmed",
            ticket_id=ticket.id,
            plate=ticket.license_plate,
            status=ticket.status.value,
            net_weight=ticket.net_weight,
            total_cost=ticket.total_cost,
        )

        if ticket.status == TicketStatus.CLOSED:
            self._print(ticket)

        self._finish()
        if self._monitor.is_manual:
            self._monitor.set_manual_weight(0.0)
        return ticket

    def cancel(self) -> None:
        """
        Discard the current draft without side effects.

        Raises:
            TransactionStateError: If there is no draft.
        """
        draft = self._require_draft()
        logger.info("transaction_cancelled", state=draft.state.value, plate=draft.license_plate)
        self._finish()

    def acknowledge_loss(self) -> None:
        """
        Drop a draft whose confirmation could not be saved.

        Raises:
            TransactionStateError: If the draft has not failed to save.
        """
        draft = self._require_draft()
        if not draft.persistence_failed:
            raise TransactionStateError("Only a draft that failed to save can be discarded as lost")

        logger.warning(
            "transaction_lost",
            state=draft.state.value,
            plate=draft.license_plate,
            weight=draft.captured_weight,
        )
        self._finish()

    def _require_draft(self) -> TransactionDraft:
        if self._draft is None or self._draft.state not in DRAFT_STATES:
            raise TransactionStateError(f"No draft to act on ({self.state.value})")
        if self._committing:
            raise TransactionStateError("The draft is being saved")
        return self._draft

    def _route(self, draft: TransactionDraft) -> None:
        """Pick inbound or outbound for the draft's plate."""
        matched = self._ledger.find_open_by_plate(draft.license_plate)
        draft.matched_ticket = matched
        if matched is not None:
            draft.state = TransactionState.OUTBOUND_DRAFT
        else:
            draft.state = TransactionState.INBOUND_DRAFT

        logger.info(
            "transaction_routed",
            state=draft.state.value,
            plate=draft.license_plate,
            matched_ticket=matched.id if matched else None,
        )

    async def _identify(self, frame: bytes) -> RecognitionResult:
        try:
            return await self._identifier.identify(frame)
        except Exception as e:
            logger.warning("identifier_failed", error=str(e))
            return RecognitionResult.unknown()

    def _build_inbound(self, draft: TransactionDraft) -> Ticket:
        return Ticket(
            id=str(uuid.uuid4()),
            license_plate=draft.license_plate,
            company_name=draft.company_name,
            material_type=draft.material_type,
            inbound_weight=draft.captured_weight,
            inbound_time=_now(),
            inbound_image=draft.captured_image,
            status=TicketStatus.OPEN,
        )

    async def _build_outbound(self, draft: TransactionDraft) -> Ticket:
        outbound_weight = self._monitor.current_weight
        outbound_time = _now()

        try:
            frame = await run_in_threadpool(self._camera.snapshot)
            outbound_image = await self._store_image(
                frame, draft.license_plate, "outbound", outbound_time
            )
        except CameraError as e:
            logger.warning("outbound_snapshot_failed", error=str(e))
            outbound_image = ""

        return self._pricing.close_ticket(
            draft.matched_ticket,
            outbound_weight=outbound_weight,
            outbound_time=outbound_time,
            outbound_image=outbound_image,
        )

    async def _store_image(
        self,
        frame: bytes,
        plate: str | None,
        kind: str,
        timestamp: datetime,
    ) -> str:
        try:
            return await run_in_threadpool(self._storage.save, frame, plate, kind, timestamp)
        except StorageError as e:
            logger.error("image_save_failed", error=str(e))
            return ""

    def _print(self, ticket: Ticket) -> None:
        if self._printer is None:
            return
        try:
            self._printer.print_ticket(ticket)
        except Exception as e:
            logger.error("receipt_print_failed", ticket_id=ticket.id, error=str(e))

    def _finish(self) -> None:
        self._draft = None
        set_transaction_id(None)


def _now() -> datetime:
    return datetime.now(timezone.utc)

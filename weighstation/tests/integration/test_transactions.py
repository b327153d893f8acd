"""
Integration tests for weighing transactions.

Runs the TransactionController against a real ledger, image storage and
stability detector, with a static camera and plate identifier.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from weighstation.application.ledger import PersistenceError
from weighstation.application.transaction import (
    NotStableError,
    TransactionController,
    TransactionStateError,
)
from weighstation.domain.models import (
    UNKNOWN_PLATE,
    RecognitionResult,
    TicketStatus,
    TransactionState,
    WeightReading,
)
from weighstation.infrastructure.db.models import Base
from weighstation.infrastructure.devices.camera import CameraError, FrameSource
from weighstation.infrastructure.devices.printer import TicketPrinter
from weighstation.infrastructure.ml.identifier import PlateIdentifier, StaticPlateIdentifier

QUIET = 0.05


class BrokenIdentifier(PlateIdentifier):
    async def identify(self, image: bytes) -> RecognitionResult:
        raise RuntimeError("model crashed")


class BrokenCamera(FrameSource):
    def snapshot(self) -> bytes:
        raise CameraError("Camera 0 returned no frame")


class BlockingIdentifier(PlateIdentifier):
    """Holds recognition open until the test releases it."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def identify(self, image: bytes) -> RecognitionResult:
        self.started.set()
        await self.release.wait()
        return RecognitionResult("ABC123", 0.9)


class JammedPrinter(TicketPrinter):
    def print_ticket(self, ticket) -> None:
        raise OSError("paper jam")


@pytest.fixture
def build_controller(ledger, monitor, identifier, camera, storage, printer):
    """Controller with selected collaborators replaced."""

    def _build(**overrides) -> TransactionController:
        kwargs = dict(
            ledger=ledger,
            monitor=monitor,
            identifier=identifier,
            camera=camera,
            storage=storage,
            printer=printer,
        )
        kwargs.update(overrides)
        return TransactionController(**kwargs)

    return _build


async def _stable(monitor, weight: float) -> None:
    monitor.on_reading(WeightReading(weight))
    await asyncio.sleep(QUIET * 3)


class TestWeighingScenario:
    """A truck weighs in loaded and weighs out empty."""

    @pytest.mark.asyncio
    async def test_inbound_then_outbound(self, controller, monitor, ledger, printer, storage):
        monitor.set_manual(True, 20000)

        draft = await controller.capture()
        assert draft.state == TransactionState.INBOUND_DRAFT
        assert draft.license_plate == "ABC123"
        assert draft.captured_weight == 20000
        assert (storage.root / draft.captured_image).exists()

        inbound = await controller.confirm()
        assert inbound.status == TicketStatus.OPEN
        assert inbound.inbound_weight == 20000
        assert inbound.inbound_time >= draft.captured_at
        assert controller.state == TransactionState.IDLE
        assert monitor.current_weight == 0.0
        assert printer.printed == []

        monitor.set_manual_weight(15000)
        draft = await controller.capture()
        assert draft.state == TransactionState.OUTBOUND_DRAFT
        assert draft.matched_ticket.id == inbound.id

        outbound = await controller.confirm()
        assert outbound.id == inbound.id
        assert outbound.status == TicketStatus.CLOSED
        assert outbound.outbound_weight == 15000
        assert outbound.net_weight == 5000
        assert outbound.total_cost == 1250.0
        assert (storage.root / outbound.outbound_image).exists()

        assert len(ledger) == 1
        assert ledger.find_open_by_plate("ABC123") is None
        assert printer.printed == [outbound]

    @pytest.mark.asyncio
    async def test_inbound_time_is_confirmation_time(self, controller, monitor):
        monitor.set_manual(True, 20000)
        draft = await controller.capture()
        await asyncio.sleep(0.05)

        before_confirm = datetime.now(timezone.utc)
        inbound = await controller.confirm()

        assert inbound.inbound_time >= before_confirm
        assert inbound.inbound_time > draft.captured_at
        assert inbound.inbound_weight == draft.captured_weight

    @pytest.mark.asyncio
    async def test_capture_on_stable_live_weight(self, controller, monitor):
        await _stable(monitor, 18250)

        draft = await controller.capture()

        assert draft.captured_weight == 18250
        assert draft.transaction_id

    @pytest.mark.asyncio
    async def test_outbound_uses_weight_at_confirmation(self, controller, monitor, ledger, make_ticket):
        await ledger.append(make_ticket(weight=20000))
        await _stable(monitor, 15000)
        await controller.capture()

        monitor.on_reading(WeightReading(14800))
        ticket = await controller.confirm()

        assert ticket.outbound_weight == 14800
        assert ticket.net_weight == 5200


class TestCaptureRejections:
    """Tests for captures that must not start a transaction."""

    @pytest.mark.asyncio
    async def test_unstable_scale(self, controller, monitor, identifier):
        monitor.on_reading(WeightReading(20000))

        with pytest.raises(NotStableError):
            await controller.capture()

        assert controller.state == TransactionState.IDLE
        assert controller.draft is None
        assert identifier.calls == 0

    @pytest.mark.asyncio
    async def test_busy(self, controller, monitor):
        monitor.set_manual(True, 20000)
        await controller.capture()

        with pytest.raises(TransactionStateError):
            await controller.capture()
        assert controller.state == TransactionState.INBOUND_DRAFT

    @pytest.mark.asyncio
    async def test_busy_while_resolving(self, build_controller, monitor):
        identifier = BlockingIdentifier()
        controller = build_controller(identifier=identifier)
        monitor.set_manual(True, 20000)

        first = asyncio.create_task(controller.capture())
        await identifier.started.wait()
        assert controller.state == TransactionState.RESOLVING

        with pytest.raises(TransactionStateError):
            await controller.capture()
        with pytest.raises(TransactionStateError):
            controller.cancel()

        identifier.release.set()
        draft = await first
        assert draft.state == TransactionState.INBOUND_DRAFT
        assert draft.license_plate == "ABC123"

    @pytest.mark.asyncio
    async def test_camera_failure_returns_to_idle(self, build_controller, monitor):
        controller = build_controller(camera=BrokenCamera())
        monitor.set_manual(True, 20000)

        with pytest.raises(CameraError):
            await controller.capture()
        assert controller.state == TransactionState.IDLE


class TestRecognitionFallback:
    """Tests for plate recognition failures."""

    @pytest.mark.asyncio
    async def test_identifier_failure_gives_unknown_inbound(self, build_controller, monitor, ledger, make_ticket):
        await ledger.append(make_ticket(plate=UNKNOWN_PLATE))
        controller = build_controller(identifier=BrokenIdentifier())
        monitor.set_manual(True, 20000)

        draft = await controller.capture()

        assert draft.license_plate == UNKNOWN_PLATE
        assert draft.confidence == 0.0
        assert draft.state == TransactionState.INBOUND_DRAFT

        ticket = await controller.confirm()
        assert ticket.license_plate == UNKNOWN_PLATE
        assert ticket.status == TicketStatus.OPEN

    @pytest.mark.asyncio
    async def test_corrected_plate_routes_outbound(self, build_controller, monitor, ledger, make_ticket):
        open_ticket = await ledger.append(make_ticket(plate="XYZ789"))
        controller = build_controller(identifier=StaticPlateIdentifier())
        monitor.set_manual(True, 12000)

        draft = await controller.capture()
        assert draft.state == TransactionState.INBOUND_DRAFT

        draft = controller.update_draft(license_plate="xyz-789")
        assert draft.license_plate == "XYZ789"
        assert draft.state == TransactionState.OUTBOUND_DRAFT
        assert draft.matched_ticket == open_ticket

        draft = controller.update_draft(license_plate="NEW1")
        assert draft.state == TransactionState.INBOUND_DRAFT
        assert draft.matched_ticket is None


class TestDraftEditing:
    """Tests for operator corrections, cancel and lost drafts."""

    @pytest.mark.asyncio
    async def test_material_and_company(self, controller, monitor):
        monitor.set_manual(True, 20000)
        await controller.capture()

        controller.update_draft(material_type="Cardboard", company_name="  Acme Haulage ")
        ticket = await controller.confirm()

        assert ticket.material_type == "Cardboard"
        assert ticket.company_name == "Acme Haulage"

    @pytest.mark.asyncio
    async def test_invalid_material(self, controller, monitor):
        monitor.set_manual(True, 20000)
        await controller.capture()

        with pytest.raises(ValueError):
            controller.update_draft(material_type="Gold")

    @pytest.mark.asyncio
    async def test_update_without_draft(self, controller):
        with pytest.raises(TransactionStateError):
            controller.update_draft(company_name="Acme")

    @pytest.mark.asyncio
    async def test_cancel(self, controller, monitor, ledger):
        monitor.set_manual(True, 20000)
        await controller.capture()

        controller.cancel()

        assert controller.state == TransactionState.IDLE
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_cancel_when_idle(self, controller):
        with pytest.raises(TransactionStateError):
            controller.cancel()

    @pytest.mark.asyncio
    async def test_confirm_when_idle(self, controller):
        with pytest.raises(TransactionStateError):
            await controller.confirm()

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_draft(self, controller, monitor, ledger, engine):
        monitor.set_manual(True, 20000)
        await controller.capture()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(PersistenceError):
            await controller.confirm()

        assert controller.state == TransactionState.INBOUND_DRAFT
        assert controller.draft.persistence_failed is True
        assert len(ledger) == 0

        controller.acknowledge_loss()
        assert controller.state == TransactionState.IDLE

    @pytest.mark.asyncio
    async def test_acknowledge_loss_requires_failure(self, controller, monitor):
        monitor.set_manual(True, 20000)
        await controller.capture()

        with pytest.raises(TransactionStateError):
            controller.acknowledge_loss()
        assert controller.state == TransactionState.INBOUND_DRAFT

    @pytest.mark.asyncio
    async def test_printer_failure_does_not_fail_confirm(
        self, build_controller, monitor, ledger, make_ticket
    ):
        await ledger.append(make_ticket(weight=20000))
        controller = build_controller(printer=JammedPrinter())
        monitor.set_manual(True, 15000)
        await controller.capture()

        ticket = await controller.confirm()

        assert ticket.status == TicketStatus.CLOSED
        assert controller.state == TransactionState.IDLE

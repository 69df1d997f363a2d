import pytest

from conftest import FixedClock, create_quote, drive_to

from pallet_workflow import (
    AdvanceOptions,
    ArtOverallStatus,
    ArtStatus,
    InvalidTransitionError,
    NotFoundError,
    OrderStatus,
    OrderStore,
    ProofStatus,
    RevisionAction,
)


@pytest.fixture
def art_order_id(store: OrderStore) -> str:
    order = create_quote(store)
    drive_to(store, order.id, OrderStatus.ART_CONFIRMATION)
    return order.id


def _sent_proof(store: OrderStore, order_id: str, location: str) -> tuple[str, str]:
    placement = store.add_placement(order_id, location)
    proof = store.add_proof(order_id, placement.id)
    store.send_proof(order_id, placement.id, proof.id, contact_method="email")
    return placement.id, proof.id


def test_first_placement_starts_art(store: OrderStore, clock: FixedClock, art_order_id: str) -> None:
    placement = store.add_placement(art_order_id, "Front Center", width="10in", height="8in", color_count=2)
    order = store.get(art_order_id)
    art = order.art_confirmation

    assert art.overall_status is ArtOverallStatus.IN_PROGRESS
    assert order.art_status is ArtStatus.IN_PROGRESS
    assert art.started_at == clock.now
    assert art.placements[0].id == placement.id
    assert art.placements[0].proofs == []
    assert art.revision_history[-1].action is RevisionAction.PLACEMENT_ADDED
    assert art.revision_history[-1].performed_by == "Designer"


def test_proof_versions_are_monotonic_per_placement(store: OrderStore, art_order_id: str) -> None:
    placement = store.add_placement(art_order_id, "Left Chest")
    first = store.add_proof(art_order_id, placement.id)
    second = store.add_proof(art_order_id, placement.id, proof_name="Left Chest - navy ink")
    assert (first.version, second.version) == (1, 2)
    assert first.status is ProofStatus.DRAFT
    assert first.proof_name == "Left Chest v1"


def test_send_proof_marks_sent_to_customer(store: OrderStore, clock: FixedClock, art_order_id: str) -> None:
    placement_id, proof_id = _sent_proof(store, art_order_id, "Back")
    order = store.get(art_order_id)
    proof = order.placement(placement_id).proofs[0]

    assert proof.status is ProofStatus.SENT
    assert proof.sent_to_customer_at == clock.now
    assert order.art_confirmation.overall_status is ArtOverallStatus.SENT_TO_CUSTOMER
    assert order.art_confirmation.last_contacted_at == clock.now
    assert order.art_confirmation.customer_contact_method == "email"

    with pytest.raises(InvalidTransitionError):
        store.send_proof(art_order_id, placement_id, proof_id)


def test_feedback_requests_revision(store: OrderStore, art_order_id: str) -> None:
    placement_id, proof_id = _sent_proof(store, art_order_id, "Front Center")
    store.record_feedback(art_order_id, placement_id, proof_id, "Make the logo bigger")
    order = store.get(art_order_id)
    proof = order.placement(placement_id).proofs[0]
    revision = order.art_confirmation.revision_history[-1]

    assert proof.status is ProofStatus.REVISION_NEEDED
    assert proof.customer_feedback == "Make the logo bigger"
    assert proof.feedback_received_at is not None
    assert order.art_confirmation.overall_status is ArtOverallStatus.REVISION_REQUESTED
    assert order.art_status is ArtStatus.REVISION_REQUESTED
    assert revision.action is RevisionAction.FEEDBACK_RECEIVED
    assert revision.performed_by == "Customer"


def test_feedback_and_approval_need_a_sent_proof(store: OrderStore, art_order_id: str) -> None:
    placement = store.add_placement(art_order_id, "Sleeve")
    proof = store.add_proof(art_order_id, placement.id)
    before = store.get(art_order_id)

    with pytest.raises(InvalidTransitionError):
        store.record_feedback(art_order_id, placement.id, proof.id, "Too dark")
    with pytest.raises(InvalidTransitionError):
        store.approve_proof(art_order_id, placement.id, proof.id)
    assert store.get(art_order_id) == before


def test_approval_requires_every_placement(store: OrderStore, clock: FixedClock, art_order_id: str) -> None:
    front = _sent_proof(store, art_order_id, "Front Center")
    back = _sent_proof(store, art_order_id, "Back")

    store.approve_proof(art_order_id, *front)
    partial = store.get(art_order_id)
    assert partial.art_confirmation.overall_status is not ArtOverallStatus.APPROVED
    assert partial.art_confirmation.completed_at is None

    clock.tick(hours=2)
    store.approve_proof(art_order_id, *back)
    order = store.get(art_order_id)
    assert order.art_confirmation.overall_status is ArtOverallStatus.APPROVED
    assert order.art_confirmation.completed_at == clock.now
    assert order.art_status is ArtStatus.APPROVED
    descriptions = [r.description for r in order.art_confirmation.revision_history if r.action is RevisionAction.APPROVED]
    assert "all placements approved" not in descriptions[0]
    assert "all placements approved" in descriptions[1]


def test_markup_on_sent_proof_counts_as_revision_request(store: OrderStore, art_order_id: str) -> None:
    placement_id, proof_id = _sent_proof(store, art_order_id, "Front Center")
    markup = store.upload_markup_file(art_order_id, placement_id, proof_id, "circled.png", "https://files.example/circled.png")
    order = store.get(art_order_id)
    proof = order.placement(placement_id).proofs[0]

    assert proof.markup_files[0].id == markup.id
    assert proof.markup_files[0].is_markup is True
    assert proof.status is ProofStatus.REVISION_NEEDED
    assert order.art_confirmation.overall_status is ArtOverallStatus.REVISION_REQUESTED
    assert order.art_status is ArtStatus.REVISION_REQUESTED


def test_client_file_upload(store: OrderStore, art_order_id: str) -> None:
    art_file = store.upload_client_file(art_order_id, "logo.ai", "https://files.example/logo.ai")
    order = store.get(art_order_id)
    assert order.art_confirmation.client_files == [art_file]
    assert order.art_confirmation.revision_history[-1].related_file_id == art_file.id


def test_removing_last_unapproved_placement_completes_art(store: OrderStore, art_order_id: str) -> None:
    approved = _sent_proof(store, art_order_id, "Front Center")
    pending_id, _ = _sent_proof(store, art_order_id, "Hood")
    store.approve_proof(art_order_id, *approved)
    assert store.get(art_order_id).art_confirmation.overall_status is ArtOverallStatus.SENT_TO_CUSTOMER

    store.remove_placement(art_order_id, pending_id)
    order = store.get(art_order_id)
    assert [p.location for p in order.art_confirmation.placements] == ["Front Center"]
    assert order.art_confirmation.overall_status is ArtOverallStatus.APPROVED
    assert order.art_confirmation.revision_history[-1].action is RevisionAction.PLACEMENT_REMOVED


def test_proof_numbering_survives_other_placement_removal(store: OrderStore, art_order_id: str) -> None:
    keep = store.add_placement(art_order_id, "Front")
    drop = store.add_placement(art_order_id, "Back")
    store.add_proof(art_order_id, keep.id)
    store.add_proof(art_order_id, drop.id)
    store.remove_placement(art_order_id, drop.id)
    assert store.add_proof(art_order_id, keep.id).version == 2


def test_final_approval_overrides_proof_state(store: OrderStore, clock: FixedClock, art_order_id: str) -> None:
    store.add_placement(art_order_id, "Front Center")
    order = store.record_final_approval(art_order_id, "Dana Whit", "phone")
    art = order.art_confirmation

    assert art.overall_status is ArtOverallStatus.APPROVED
    assert art.completed_at == clock.now
    assert art.customer_approval_name == "Dana Whit"
    assert art.customer_approval_method == "phone"
    assert art.revision_history[-1].action is RevisionAction.FINAL_APPROVAL
    assert store.advance(art_order_id).status is OrderStatus.INVENTORY_ORDER


def test_unknown_ids_raise_not_found(store: OrderStore, art_order_id: str) -> None:
    with pytest.raises(NotFoundError):
        store.add_proof(art_order_id, "missing-placement")
    placement = store.add_placement(art_order_id, "Front")
    with pytest.raises(NotFoundError):
        store.send_proof(art_order_id, placement.id, "missing-proof")


def test_art_locked_outside_art_confirmation(store: OrderStore) -> None:
    order = create_quote(store)
    with pytest.raises(InvalidTransitionError):
        store.add_placement(order.id, "Front")


def test_pending_divergence_survives_and_art_can_finish_later(store: OrderStore, art_order_id: str) -> None:
    store.add_placement(art_order_id, "Front Center")
    order = store.advance(art_order_id, AdvanceOptions(art_pending=True))

    assert order.status is OrderStatus.INVENTORY_ORDER
    assert order.art_status is ArtStatus.PENDING
    assert order.art_confirmation.overall_status is ArtOverallStatus.IN_PROGRESS

    placement_id = order.art_confirmation.placements[0].id
    proof = store.add_proof(art_order_id, placement_id)
    store.send_proof(art_order_id, placement_id, proof.id)
    still_pending = store.get(art_order_id)
    assert still_pending.art_status is ArtStatus.PENDING
    assert still_pending.art_confirmation.overall_status is ArtOverallStatus.SENT_TO_CUSTOMER

    store.approve_proof(art_order_id, placement_id, proof.id)
    done = store.get(art_order_id)
    assert done.art_status is ArtStatus.APPROVED
    assert done.art_confirmation.overall_status is ArtOverallStatus.APPROVED


def test_markup_on_pending_art_keeps_it_editable(store: OrderStore, art_order_id: str) -> None:
    placement_id, proof_id = _sent_proof(store, art_order_id, "Front Center")
    store.advance(art_order_id, AdvanceOptions(art_pending=True))

    store.upload_markup_file(art_order_id, placement_id, proof_id, "front-markup.png", "https://files.example/front-markup.png")
    marked = store.get(art_order_id)
    assert marked.status is OrderStatus.INVENTORY_ORDER
    assert marked.art_status is ArtStatus.PENDING
    assert marked.art_confirmation.overall_status is ArtOverallStatus.REVISION_REQUESTED

    revised = store.add_proof(art_order_id, placement_id)
    store.send_proof(art_order_id, placement_id, revised.id)
    store.approve_proof(art_order_id, placement_id, revised.id)
    done = store.get(art_order_id)
    assert done.art_status is ArtStatus.APPROVED
    assert done.art_confirmation.overall_status is ArtOverallStatus.APPROVED

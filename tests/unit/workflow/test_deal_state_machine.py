from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from roofline.core.enums import DealStatus, NoticeLevel
from roofline.core.exceptions import InvalidTransitionError, ValidationError
from roofline.schemas.deals import Deal
from roofline.workflow.state_machine import (
    ADJUSTER_NOT_ASSIGNED,
    ADMIN_OWNED,
    ADMIN_OWNED_FIELDS,
    ADMIN_STATE_MACHINE,
    FINANCIALS_LOCKED,
    STATUS_IS_DERIVED,
    StateMachine,
    admin_transition,
    evaluate_update,
    forced_transition,
    inspection_photos_uploaded,
    is_forward,
)

NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)

CLAIM_INFO = {
    "insurance_company": "State Farm",
    "policy_number": "P-100",
    "claim_number": "C-200",
    "date_of_loss": date(2026, 9, 1),
    "adjuster_name": "Dana Reyes",
}

FINANCIALS = {"rcv": 20000.0, "acv": 15000.0, "deductible": 1000.0, "depreciation": 5000.0}


def test_state_machine_allows_valid_transition():
    sm = StateMachine({"lead": {"inspection_scheduled"}})
    assert sm.can_transition("lead", "inspection_scheduled") is True
    assert sm.allowed_from("lead") == {"inspection_scheduled"}
    sm.assert_transition("lead", "inspection_scheduled")


def test_state_machine_rejects_invalid_transition():
    with pytest.raises(InvalidTransitionError):
        ADMIN_STATE_MACHINE.assert_transition("lead", "paid")


def test_lead_does_not_advance_on_field_edits():
    deal = Deal(id="d1", homeowner_name="Pat Doe")
    decision = evaluate_update(deal, {"homeowner_phone": "5125550100"}, now=NOW)
    assert decision.advanced is False
    assert decision.updates == {"homeowner_phone": "5125550100"}


def test_inspection_photos_move_lead_forward():
    deal = Deal(id="d1")
    decision = inspection_photos_uploaded(deal, ["deals/d1/roof-1.jpg"], now=NOW)
    assert decision.to_status == DealStatus.INSPECTION_SCHEDULED
    assert decision.updates["status"] == DealStatus.INSPECTION_SCHEDULED
    assert decision.updates["inspection_date"] == NOW.date()
    assert decision.updates["inspection_images"] == ["deals/d1/roof-1.jpg"]


def test_inspection_photos_later_only_append():
    deal = Deal(id="d1", status=DealStatus.CLAIM_FILED, inspection_images=["a.jpg"])
    decision = inspection_photos_uploaded(deal, ["b.jpg", ""], now=NOW)
    assert decision.advanced is False
    assert decision.updates == {"inspection_images": ["a.jpg", "b.jpg"]}


def test_completing_claim_info_files_the_claim():
    deal = Deal(id="d1", status=DealStatus.INSPECTION_SCHEDULED, contract_signed=True)
    decision = evaluate_update(deal, CLAIM_INFO, now=NOW)
    assert decision.to_status == DealStatus.CLAIM_FILED
    assert decision.updates["claim_filed_date"] == NOW
    assert decision.notices[-1].level == NoticeLevel.SUCCESS
    assert decision.notices[-1].message == "Deal moved to: Meet Adjuster & Upload Loss Statement"


def test_partial_claim_info_stays_put():
    deal = Deal(id="d1", status=DealStatus.INSPECTION_SCHEDULED)
    decision = evaluate_update(deal, {"insurance_company": "State Farm"}, now=NOW)
    assert decision.advanced is False
    assert "status" not in decision.updates


def test_unassigned_adjuster_skips_meeting_stage():
    deal = Deal(id="d1", status=DealStatus.CLAIM_FILED, lost_statement_url="deals/d1/ls.pdf", **FINANCIALS)
    decision = evaluate_update(deal, {"adjuster_not_assigned": True}, now=NOW)
    assert decision.to_status == DealStatus.AWAITING_APPROVAL
    assert decision.updates["adjuster_phone"] == ADJUSTER_NOT_ASSIGNED
    assert decision.updates["adjuster_meeting_date"] is None
    assert decision.updates["awaiting_approval_date"] == NOW


def test_assigned_adjuster_goes_through_meeting_stage():
    deal = Deal(id="d1", status=DealStatus.CLAIM_FILED, lost_statement_url="deals/d1/ls.pdf", **FINANCIALS)
    decision = evaluate_update(
        deal,
        {"adjuster_phone": "5125550100", "adjuster_meeting_date": datetime(2026, 10, 21, 9, 0)},
        now=NOW,
    )
    assert decision.to_status == DealStatus.ADJUSTER_MET
    # adjuster_met has no milestone column.
    assert set(decision.updates) == {"adjuster_phone", "adjuster_meeting_date", "status"}

    met = Deal(id="d1", status=DealStatus.ADJUSTER_MET)
    assert evaluate_update(met, {"adjuster_notes": "Full replacement"}, now=NOW).to_status == DealStatus.AWAITING_APPROVAL


def test_status_in_payload_is_stripped_with_notice():
    deal = Deal(id="d1", status=DealStatus.LEAD)
    decision = evaluate_update(deal, {"status": "paid", "notes": "call back"}, now=NOW)
    assert "status" not in decision.updates
    assert decision.to_status == DealStatus.LEAD
    assert decision.notices[0].message == STATUS_IS_DERIVED


def test_status_only_payload_never_advances_a_ready_deal():
    deal = Deal(id="d1", status=DealStatus.INSPECTION_SCHEDULED, contract_signed=True, **CLAIM_INFO)
    decision = evaluate_update(deal, {"status": "claim_filed"}, now=NOW)
    assert decision.has_changes is False
    assert decision.advanced is False


def test_empty_edit_rechecks_persisted_record():
    deal = Deal(id="d1", status=DealStatus.INSPECTION_SCHEDULED, contract_signed=True, **CLAIM_INFO)
    assert evaluate_update(deal, {}, now=NOW).to_status == DealStatus.CLAIM_FILED
    assert evaluate_update(deal, {}, now=NOW, advance=False).has_changes is False


def test_autosave_mode_never_advances():
    deal = Deal(id="d1", status=DealStatus.INSPECTION_SCHEDULED, contract_signed=True)
    decision = evaluate_update(deal, CLAIM_INFO, now=NOW, advance=False)
    assert decision.advanced is False
    assert decision.updates == CLAIM_INFO


def test_financials_locked_after_approval():
    deal = Deal(id="d1", status=DealStatus.APPROVED, approved_date=NOW, **FINANCIALS)
    decision = evaluate_update(deal, {"rcv": 25000, "notes": "supplement coming"}, now=NOW)
    assert decision.updates == {"notes": "supplement coming"}
    assert [notice.message for notice in decision.notices] == [FINANCIALS_LOCKED]


def test_requirement_free_stage_waits_for_admin():
    deal = Deal(id="d1", status=DealStatus.AWAITING_APPROVAL)
    decision = evaluate_update(deal, {"notes": "homeowner called"}, now=NOW)
    assert decision.held_for_admin is True
    assert decision.advanced is False


def test_unknown_and_immutable_fields_rejected():
    deal = Deal(id="d1")
    with pytest.raises(ValidationError):
        evaluate_update(deal, {"total_price": 1}, now=NOW)
    with pytest.raises(ValidationError):
        evaluate_update(deal, {"id": "d2"}, now=NOW)


def test_admin_transition_stamps_milestone():
    deal = Deal(id="d1", status=DealStatus.AWAITING_APPROVAL)
    updates = admin_transition(deal, DealStatus.APPROVED, extra={"approval_type": "full"}, now=NOW)
    assert updates == {"approval_type": "full", "status": DealStatus.APPROVED, "approved_date": NOW}


def test_admin_transition_keeps_explicit_milestone():
    deal = Deal(id="d1", status=DealStatus.MATERIALS_SELECTED)
    updates = admin_transition(deal, "install_scheduled", extra={"install_date": date(2026, 11, 2)}, now=NOW)
    assert updates["install_date"] == date(2026, 11, 2)


def test_admin_transition_rejects_skips():
    deal = Deal(id="d1", status=DealStatus.AWAITING_APPROVAL)
    with pytest.raises(InvalidTransitionError):
        admin_transition(deal, DealStatus.INSTALLED, now=NOW)


def test_forced_transition_can_go_backwards():
    deal = Deal(id="d1", status=DealStatus.INSTALLED, installed_date=NOW)
    assert forced_transition(deal, "approved", now=NOW) == {"status": DealStatus.APPROVED, "approved_date": NOW}
    assert is_forward("approved", "installed") is True
    assert is_forward("installed", "approved") is False


def test_unflagging_adjuster_clears_placeholder_phone():
    deal = Deal(
        id="d1",
        status=DealStatus.CLAIM_FILED,
        lost_statement_url="deals/d1/ls.pdf",
        adjuster_not_assigned=True,
        adjuster_phone=ADJUSTER_NOT_ASSIGNED,
        **FINANCIALS,
    )
    decision = evaluate_update(
        deal,
        {"adjuster_not_assigned": False, "adjuster_meeting_date": datetime(2026, 10, 21, 9, 0)},
        now=NOW,
    )
    assert decision.updates["adjuster_phone"] is None
    assert decision.advanced is False

    decision = evaluate_update(
        deal,
        {
            "adjuster_not_assigned": False,
            "adjuster_phone": "5125550100",
            "adjuster_meeting_date": datetime(2026, 10, 21, 9, 0),
        },
        now=NOW,
    )
    assert decision.updates["adjuster_phone"] == "5125550100"
    assert decision.to_status == DealStatus.ADJUSTER_MET


def test_placeholder_phone_does_not_satisfy_assigned_adjuster():
    deal = Deal(
        id="d1",
        status=DealStatus.CLAIM_FILED,
        lost_statement_url="deals/d1/ls.pdf",
        adjuster_phone=ADJUSTER_NOT_ASSIGNED,
        **FINANCIALS,
    )
    decision = evaluate_update(deal, {"adjuster_meeting_date": datetime(2026, 10, 21, 9, 0)}, now=NOW)
    assert decision.advanced is False


@pytest.mark.parametrize(
    "fields",
    [
        {"commission_override_amount": 5000, "commission_override_reason": "mine"},
        {"approved_date": NOW, "approval_type": "full"},
        {"commission_paid": True, "deal_commissions": [{"commission_amount": 9000, "paid": True}]},
        {"invoice_amount": 100.0, "install_date": date(2026, 11, 2)},
    ],
)
def test_rep_edits_cannot_write_office_fields(fields):
    deal = Deal(id="d1", status=DealStatus.AWAITING_APPROVAL, **FINANCIALS)
    decision = evaluate_update(deal, {**fields, "notes": "called homeowner"}, now=NOW)
    assert decision.updates == {"notes": "called homeowner"}
    assert any(n.message == ADMIN_OWNED and n.level == NoticeLevel.INFO for n in decision.notices)
    assert set(fields) <= ADMIN_OWNED_FIELDS


def test_office_fields_alone_never_advance():
    deal = Deal(id="d1", status=DealStatus.INSPECTION_SCHEDULED, contract_signed=True, **CLAIM_INFO)
    decision = evaluate_update(deal, {"approved_date": NOW}, now=NOW)
    assert decision.updates == {}
    assert decision.advanced is False


@pytest.mark.parametrize("missing", ["rcv", "acv", "deductible", "depreciation"])
def test_claim_gate_needs_every_financial(missing):
    financials = {name: value for name, value in FINANCIALS.items() if name != missing}
    deal = Deal(id="d1", status=DealStatus.CLAIM_FILED, lost_statement_url="deals/d1/ls.pdf")
    decision = evaluate_update(deal, {"adjuster_not_assigned": True, **financials}, now=NOW)
    assert decision.advanced is False
    assert "status" not in decision.updates

    decision = evaluate_update(deal, {"adjuster_not_assigned": True, **FINANCIALS}, now=NOW)
    assert decision.to_status == DealStatus.AWAITING_APPROVAL

from __future__ import annotations

from datetime import date, datetime

import pytest

from roofline.core.enums import DealStatus, DocumentCategory
from roofline.schemas.deals import Deal
from roofline.services.admin_service import AdminDealService
from roofline.services.deal_service import DealService
from roofline.services.signatures import AgreementFlow, CompletionFormFlow
from roofline.workflow.steps import position_of

PNG = b"\x89PNG"

CLAIM_INFO = {
    "insurance_company": "State Farm",
    "policy_number": "P-100",
    "claim_number": "C-200",
    "date_of_loss": date(2026, 9, 1),
    "adjuster_name": "Dana Reyes",
}

FINANCIALS = {"rcv": 20000.0, "acv": 15000.0, "deductible": 1000.0, "depreciation": 5000.0}


def _sign(flow, count):
    flow.begin()
    for _ in range(count):
        flow.capture(PNG)
    return flow.result.deal


@pytest.mark.parametrize("adjuster_assigned", [True, False])
def test_status_only_moves_forward_through_the_job(make_deals, files_gateway, fixed_clock, adjuster_assigned):
    deals = make_deals(Deal(id="d1", homeowner_name="Pat Doe"))
    service = DealService(deals, files_gateway, clock=fixed_clock)
    admin = AdminDealService(deals, actor_id="admin-1", clock=fixed_clock)
    history = [position_of(DealStatus.LEAD)]

    def track(deal: Deal) -> Deal:
        history.append(position_of(deal.status))
        return deal

    def upload(deal: Deal, kind: DocumentCategory) -> Deal:
        return track(service.upload_document(deal, kind, b"%PDF", f"{kind.value}.pdf", "application/pdf").deal)

    deal = track(service.record_inspection_photos(deals.get("d1"), ["roof-1.jpg"]).deal)
    deal = track(service.save_fields(deal, CLAIM_INFO).deal)
    deal = track(_sign(AgreementFlow(deal, deals, files_gateway, clock=fixed_clock), 6))
    assert deal.status == DealStatus.CLAIM_FILED

    deal = upload(deal, DocumentCategory.LOST_STATEMENT)
    if adjuster_assigned:
        deal = track(
            service.save_fields(
                deal,
                {**FINANCIALS, "adjuster_phone": "5125550100", "adjuster_meeting_date": datetime(2026, 10, 21, 9, 0)},
            ).deal
        )
        assert deal.status == DealStatus.ADJUSTER_MET
        deal = track(service.save_fields(deal, {"adjuster_notes": "Full replacement"}).deal)
    else:
        deal = track(service.save_fields(deal, {**FINANCIALS, "adjuster_not_assigned": True}).deal)
    assert deal.status == DealStatus.AWAITING_APPROVAL

    deal = track(admin.approve_financials(deal))
    deal = upload(deal, DocumentCategory.ACV_RECEIPT)
    deal = upload(deal, DocumentCategory.DEDUCTIBLE_RECEIPT)
    deal = track(service.save_fields(deal, {"material_category": "Shingle", "material_color": "Pewter"}).deal)
    assert deal.status == DealStatus.MATERIALS_SELECTED

    deal = track(admin.schedule_install(deal, date(2026, 11, 2)))
    deal = track(admin.mark_installed(deal))
    flow = CompletionFormFlow(deal, deals, files_gateway, clock=fixed_clock)
    flow.set_crew_lead("Marco")
    flow.set_walkthrough_type("photos_only")
    deal = track(_sign(flow, 4))
    assert deal.status == DealStatus.COMPLETION_SIGNED

    deal = track(admin.send_invoice(deal, "deals/d1/invoice/inv.pdf"))
    deal = upload(deal, DocumentCategory.DEPRECIATION_RECEIPT)
    deal = track(service.request_payment(deal).deal)
    deal = track(admin.complete_deal(deal))
    deal = track(admin.approve_commission(deal))

    assert deal.status == DealStatus.PAID
    assert history == sorted(history)
    # Skipping the adjuster meeting is the only two-stage hop.
    max_hop = 1 if adjuster_assigned else 2
    assert all(later - earlier <= max_hop for earlier, later in zip(history, history[1:]))

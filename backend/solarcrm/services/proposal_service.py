"""Proposals: document generation, sending and the public client portal.

Status changes go through ``quote_engine.proposal``; this module maps its
transition errors to application errors, mirrors decisions on the budget
and fires the notifications.  Records in, records out.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from quote_engine.errors import ProposalTransitionError
from quote_engine.proposal import (
    ProposalStatus,
    accept,
    classify_device,
    funnel_stats,
    mark_sent,
    mark_viewed,
    reject,
    view_stats,
)
from quote_engine.proposal import expire as expire_state
from quote_engine.proposal import record_download as count_download

from ..config import settings
from ..core.errors import GoneError, NotFoundError, ValidationError
from ..core.permissions import Actor, ensure_owner_or_admin
from ..schemas.budget import BudgetRecord, BudgetStatus, BudgetType, ClientInfo
from ..schemas.proposal import (
    ProposalCustomizations,
    ProposalRecord,
    ProposalViewRecord,
    SendResult,
)
from .budget_service import ensure_can_view, proposal_number
from .document_service import GeneratedDocument, generate_documents
from .email_service import EmailService
from .whatsapp import format_whatsapp_message, whatsapp_link

logger = logging.getLogger(__name__)

CHANNELS = ("email", "whatsapp")
DOCUMENT_TYPES = ("word", "pdf", "excel")
TRACKED_ACTIONS = ("click", "scroll", "time")


@dataclass(frozen=True)
class PortalVisit:
    proposal: ProposalRecord
    budget: BudgetRecord
    view: ProposalViewRecord
    payload: dict


def _now() -> datetime:
    return datetime.now(timezone.utc)


def public_url(proposal: ProposalRecord) -> str:
    return f"{settings.frontend_url.rstrip('/')}/proposal/{proposal.unique_link}"


def _mirror_status(budget: BudgetRecord, status: BudgetStatus, now: datetime) -> BudgetRecord:
    return budget.model_copy(update={"status": status, "updated_at": now})


# ======================================================================
# Creation and documents
# ======================================================================

def create_proposal(
    actor: Actor,
    budget: BudgetRecord,
    documents: dict[str, str | None] | None = None,
    count_this_year: int = 0,
    now: datetime | None = None,
    customizations: dict | None = None,
) -> ProposalRecord:
    ensure_can_view(actor, budget)
    now = now or _now()
    number = proposal_number(now, count_this_year)
    proposal = ProposalRecord(
        id=str(uuid.uuid4()),
        budget_id=budget.id,
        proposal_number=number,
        unique_link=secrets.token_hex(32),
        documents={"word": None, "pdf": None, "excel": None, **(documents or {})},
        customizations=ProposalCustomizations(**(customizations or {})),
        expires_at=budget.valid_until,
        created_at=now,
        updated_at=now,
    )
    logger.info(
        "Proposal created: %s for %s", number, budget.budget_number,
        extra={"proposal_number": number, "budget_number": budget.budget_number, "actor": actor.email},
    )
    return proposal


def generate_proposal_documents(
    actor: Actor,
    budget: BudgetRecord,
    client: ClientInfo,
    proposal: ProposalRecord | None = None,
    count_this_year: int = 0,
    now: datetime | None = None,
    output_dir: str | Path | None = None,
) -> tuple[BudgetRecord, ProposalRecord, GeneratedDocument]:
    """Render the budget PDF and attach it to the budget and its proposal.

    The proposal is created on first generation.
    """
    ensure_can_view(actor, budget)
    now = now or _now()
    document = generate_documents(budget, client, output_dir=output_dir, now=now)

    budget = budget.model_copy(update={
        "documents": {**budget.documents, "pdf": document.url},
        "updated_at": now,
    })
    if proposal is None:
        proposal = create_proposal(actor, budget, {"pdf": document.url}, count_this_year, now)
    else:
        proposal = proposal.model_copy(update={
            "documents": {**proposal.documents, "pdf": document.url},
            "updated_at": now,
        })
    return budget, proposal, document


# ======================================================================
# Sending
# ======================================================================

def send_budget(
    actor: Actor,
    budget: BudgetRecord,
    proposal: ProposalRecord,
    client: ClientInfo,
    channels: list[str] | tuple[str, ...] = ("email",),
    email_service: EmailService | None = None,
    now: datetime | None = None,
    custom_message: str | None = None,
) -> tuple[BudgetRecord, ProposalRecord, SendResult]:
    ensure_can_view(actor, budget)
    channels = list(dict.fromkeys(channels))
    if not channels or any(c not in CHANNELS for c in channels):
        raise ValidationError(f"channels must be a non-empty subset of {list(CHANNELS)}", field="channels")
    if not proposal.documents.get("pdf"):
        raise ValidationError("Generate the budget documents before sending", field="documents")

    now = now or _now()
    email_service = email_service or EmailService()
    link = public_url(proposal)

    # Every channel is checked before anything goes out.
    wa_link = None
    if "whatsapp" in channels:
        message = format_whatsapp_message(budget, client, link)
        wa_link = whatsapp_link(client.contact_phone or "", message)

    try:
        state = mark_sent(proposal.to_state(), now)
    except ProposalTransitionError as exc:
        raise ValidationError(str(exc), field="status") from exc
    proposal = proposal.with_state(state, now)

    email_sent = False
    if "email" in channels:
        email_sent = email_service.send_proposal(
            client.email, client.name, budget.budget_number, link,
            valid_until=budget.valid_until,
            custom_message=custom_message or proposal.customizations.custom_message,
        )
        proposal = proposal.model_copy(update={"emails_sent": [
            *proposal.emails_sent,
            {"to": client.email, "sent_at": now.isoformat(), "type": "proposal", "delivered": email_sent},
        ]})
        if not email_sent:
            logger.warning(
                "Proposal e-mail not delivered for %s", proposal.proposal_number,
                extra={"proposal_number": proposal.proposal_number, "channel": "email"},
            )

    if budget.status == BudgetStatus.DRAFT:
        budget = _mirror_status(budget, BudgetStatus.SENT, now)

    email_service.send_proposal_sent(actor.email, client.name, proposal.proposal_number, channels)
    logger.info(
        "Budget %s sent via %s", budget.budget_number, ", ".join(channels),
        extra={
            "budget_number": budget.budget_number,
            "proposal_number": proposal.proposal_number,
            "actor": actor.email,
            "channel": ",".join(channels),
        },
    )
    result = SendResult(
        proposal_link=link,
        whatsapp_link=wa_link,
        status=proposal.status,
        channels=channels,
        email_sent=email_sent,
    )
    return budget, proposal, result


def resend_proposal(
    actor: Actor,
    budget: BudgetRecord,
    proposal: ProposalRecord,
    client: ClientInfo,
    email_service: EmailService | None = None,
    now: datetime | None = None,
) -> ProposalRecord:
    """E-mail the proposal link again; a viewed proposal keeps its status."""
    ensure_can_view(actor, budget)
    if proposal.status in (ProposalStatus.ACCEPTED, ProposalStatus.EXPIRED):
        raise ValidationError(f"Cannot resend a proposal that is {proposal.status.value}", field="status")

    now = now or _now()
    email_service = email_service or EmailService()
    if proposal.status in (ProposalStatus.DRAFT, ProposalStatus.SENT):
        proposal = proposal.with_state(mark_sent(proposal.to_state(), now), now)

    delivered = email_service.send_proposal(
        client.email, client.name, budget.budget_number, public_url(proposal),
        valid_until=budget.valid_until,
        custom_message=proposal.customizations.custom_message,
    )
    logger.info(
        "Proposal %s resent to %s", proposal.proposal_number, client.email,
        extra={"proposal_number": proposal.proposal_number, "actor": actor.email, "channel": "email"},
    )
    return proposal.model_copy(update={
        "emails_sent": [
            *proposal.emails_sent,
            {"to": client.email, "sent_at": now.isoformat(), "type": "resend", "delivered": delivered},
        ],
        "updated_at": now,
    })


# ======================================================================
# Public portal
# ======================================================================

def _portal_payload(proposal: ProposalRecord, budget: BudgetRecord, client: ClientInfo) -> dict:
    total = budget.financial.total
    max_installments = max(1, budget.financial.payment_conditions.get("max_installments") or 1)
    cash_discount_pct = budget.financial.payment_conditions.get("cash_discount_pct", 10.0)
    financial = {
        "total": total,
        "cash_discount": total * cash_discount_pct / 100,
        "cash_total": total - total * cash_discount_pct / 100,
        "installments": max_installments,
        "installment_value": total / max_installments,
    }
    payload = {
        "id": proposal.id,
        "proposal_number": proposal.proposal_number,
        "budget_number": budget.budget_number,
        "status": proposal.status.value,
        "viewed_at": proposal.first_viewed_at,
        "accepted_at": proposal.accepted_at,
        "client": {
            "name": client.name,
            "phone": client.phone,
            "email": client.email,
            "address": client.full_address(),
        },
        "valid_until": budget.valid_until,
        "customizations": proposal.customizations.model_dump(),
        "type": budget.type.value,
        "financial": financial,
    }

    if budget.type == BudgetType.SOLAR and budget.solar_data:
        system = budget.solar_data["system"]
        production = budget.solar_data["production"]
        payload["system"] = {
            "power_kwp": system["system_power_kwp"],
            "panels": system["panel_quantity"],
            "panel_model": f"{system['panel_power_w']:g}W",
            "inverter": f"{system['inverter']['nominal_kw']:g}kW",
            "monthly_production_kwh": production["monthly_average_kwh"],
            "yearly_production_kwh": production["yearly_total_kwh"],
        }
        financial["monthly_economy"] = production["monthly_economy"]
        financial["yearly_economy"] = production["yearly_economy"]
        # One year of tariff growth applied to the flat 25-year sum.
        financial["total_economy_25_years"] = production["yearly_economy"] * 25 * 1.07
        payload["materials"] = list(budget.materials)
    else:
        payload["services"] = list(budget.items)

    return payload


def open_public_proposal(
    proposal: ProposalRecord,
    budget: BudgetRecord,
    client: ClientInfo,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referrer: str | None = None,
    now: datetime | None = None,
    email_service: EmailService | None = None,
    salesperson_email: str | None = None,
) -> PortalVisit:
    """Register a visit to the public page and build what the client sees."""
    if budget.deleted_at is not None:
        raise NotFoundError("Proposal not found")
    now = now or _now()
    state = proposal.to_state()
    if state.is_expired(now):
        raise GoneError("This proposal has expired")

    first_view = proposal.first_viewed_at is None
    proposal = proposal.with_state(mark_viewed(state, now), now)
    view = ProposalViewRecord(
        id=str(uuid.uuid4()),
        proposal_id=proposal.id,
        ip_address=ip_address,
        user_agent=user_agent,
        device={"type": classify_device(user_agent), "os": None, "browser": None},
        referrer=referrer,
        created_at=now,
    )

    if first_view:
        if budget.status == BudgetStatus.SENT:
            budget = _mirror_status(budget, BudgetStatus.VIEWED, now)
        if salesperson_email:
            (email_service or EmailService()).send_proposal_viewed(
                salesperson_email, client.name, proposal.proposal_number, client.contact_phone,
            )

    logger.info(
        "Proposal viewed: %s by %s", proposal.proposal_number, client.name,
        extra={"proposal_number": proposal.proposal_number},
    )
    return PortalVisit(proposal, budget, view, _portal_payload(proposal, budget, client))


def accept_proposal(
    proposal: ProposalRecord,
    budget: BudgetRecord,
    client: ClientInfo,
    salesperson_email: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    signature: str | None = None,
    observations: str | None = None,
    now: datetime | None = None,
    email_service: EmailService | None = None,
) -> tuple[ProposalRecord, BudgetRecord]:
    now = now or _now()
    state = proposal.to_state()
    if state.status == ProposalStatus.ACCEPTED:
        raise ValidationError("This proposal has already been accepted", field="status")
    if state.is_expired(now):
        raise GoneError("This proposal has expired")

    try:
        state = accept(state, now, {
            "ip": ip_address,
            "user_agent": user_agent,
            "device": classify_device(user_agent),
            "signature": signature,
            "observations": observations,
        })
    except ProposalTransitionError as exc:
        raise ValidationError(str(exc), field="status") from exc

    proposal = proposal.with_state(state, now)
    if signature:
        proposal = proposal.model_copy(update={"client_signature": signature})
    budget = _mirror_status(budget, BudgetStatus.ACCEPTED, now)

    email_service = email_service or EmailService()
    system_power = None
    if budget.type == BudgetType.SOLAR and budget.solar_data:
        system_power = budget.solar_data["system"]["system_power_kwp"]
    email_service.send_proposal_accepted(
        salesperson_email, client.name, proposal.proposal_number, budget.financial.total,
        system_power_kwp=system_power, client_phone=client.contact_phone,
    )
    email_service.send_acceptance_confirmation(
        client.email, client.name, proposal.proposal_number, budget.financial.total,
    )

    logger.info(
        "Proposal accepted: %s by %s", proposal.proposal_number, client.name,
        extra={"proposal_number": proposal.proposal_number, "budget_number": budget.budget_number},
    )
    return proposal, budget


def reject_proposal(
    proposal: ProposalRecord,
    budget: BudgetRecord,
    client: ClientInfo,
    reason: str | None = None,
    salesperson_email: str | None = None,
    now: datetime | None = None,
    email_service: EmailService | None = None,
) -> tuple[ProposalRecord, BudgetRecord]:
    now = now or _now()
    state = proposal.to_state()
    if state.status == ProposalStatus.REJECTED:
        raise ValidationError("This proposal has already been rejected", field="status")
    try:
        state = reject(state, now, reason)
    except ProposalTransitionError as exc:
        raise ValidationError(str(exc), field="status") from exc

    proposal = proposal.with_state(state, now)
    budget = _mirror_status(budget, BudgetStatus.REJECTED, now)
    (email_service or EmailService()).send_proposal_rejected(
        salesperson_email, client.name, proposal.proposal_number, reason,
    )
    logger.info(
        "Proposal rejected: %s - reason: %s", proposal.proposal_number, reason or "not given",
        extra={"proposal_number": proposal.proposal_number, "budget_number": budget.budget_number},
    )
    return proposal, budget


def record_download(proposal: ProposalRecord, doc_type: str, now: datetime | None = None) -> tuple[ProposalRecord, str]:
    """Count a download and return the document URL."""
    if doc_type not in DOCUMENT_TYPES:
        raise ValidationError(f"Invalid document type: {doc_type}", field="type")
    url = proposal.documents.get(doc_type)
    if not url:
        raise NotFoundError("Document not available")
    now = now or _now()
    return proposal.with_state(count_download(proposal.to_state()), now), url


def track_action(
    view: ProposalViewRecord,
    action: str,
    data: dict | None = None,
    now: datetime | None = None,
) -> ProposalViewRecord:
    """Fold a client-side analytics event into the latest view."""
    if action not in TRACKED_ACTIONS:
        raise ValidationError(f"Unknown action: {action}", field="action")
    data = data or {}
    now = now or _now()
    actions = {"clicks": [], "scroll_depth": 0, **view.actions}
    duration = view.duration

    if action == "click":
        actions["clicks"] = [*actions["clicks"], {"element": data.get("element"), "timestamp": now.isoformat()}]
    elif action == "scroll":
        actions["scroll_depth"] = max(actions["scroll_depth"], data.get("depth") or 0)
    else:
        duration = int(data.get("seconds") or 0)

    return view.model_copy(update={"actions": actions, "duration": duration})


def expire_overdue(proposals: list[ProposalRecord], now: datetime | None = None) -> list[ProposalRecord]:
    """Return the undecided proposals whose validity has passed, now expired."""
    now = now or _now()
    expired = []
    for proposal in proposals:
        if proposal.status not in (ProposalStatus.DRAFT, ProposalStatus.SENT, ProposalStatus.VIEWED):
            continue
        if proposal.expires_at is None or now <= proposal.expires_at:
            continue
        expired.append(proposal.with_state(expire_state(proposal.to_state()), now))
        logger.info("Proposal expired: %s", proposal.proposal_number,
                    extra={"proposal_number": proposal.proposal_number})
    return expired


def remind_expiring(
    proposal: ProposalRecord,
    client: ClientInfo,
    within_days: int = 3,
    now: datetime | None = None,
    email_service: EmailService | None = None,
) -> bool:
    """E-mail the client when an undecided proposal expires within ``within_days``."""
    now = now or _now()
    if proposal.status not in (ProposalStatus.SENT, ProposalStatus.VIEWED) or proposal.expires_at is None:
        return False
    remaining = proposal.expires_at - now
    if remaining.total_seconds() <= 0 or remaining.days >= within_days:
        return False
    return (email_service or EmailService()).send_expiring_reminder(
        client.email, client.name, public_url(proposal), proposal.expires_at,
    )


# ======================================================================
# Statistics
# ======================================================================

def view_statistics(actor: Actor, budget: BudgetRecord, views: list[ProposalViewRecord]) -> dict:
    ensure_owner_or_admin(actor, budget.created_by, "see proposal views")
    return view_stats(v.to_event() for v in views)


def proposal_statistics(proposals: list[ProposalRecord]) -> dict:
    days_to_accept = [
        (p.accepted_at - p.sent_at).total_seconds() / 86400
        for p in proposals
        if p.status == ProposalStatus.ACCEPTED and p.accepted_at and p.sent_at
    ]
    stats = funnel_stats([p.status for p in proposals], days_to_accept)
    total_views = sum(p.view_count for p in proposals)
    stats["avg_views_per_proposal"] = round(total_views / len(proposals), 1) if proposals else 0.0
    return stats

from datetime import datetime

from pydantic import BaseModel, Field

from quote_engine.proposal import ProposalState, ProposalStatus, ViewEvent


class ProposalCustomizations(BaseModel):
    show_prices: bool = True
    show_payment_options: bool = True
    show_technical_details: bool = True
    show_economy_projection: bool = True
    custom_message: str | None = None
    theme: str = "default"


class ProposalRecord(BaseModel):
    id: str
    budget_id: str
    proposal_number: str
    unique_link: str
    status: ProposalStatus = ProposalStatus.DRAFT
    documents: dict[str, str | None] = Field(
        default_factory=lambda: {"word": None, "pdf": None, "excel": None}
    )
    sent_at: datetime | None = None
    first_viewed_at: datetime | None = None
    last_viewed_at: datetime | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    client_signature: str | None = None
    acceptance_data: dict = Field(default_factory=dict)
    view_count: int = 0
    download_count: int = 0
    share_count: int = 0
    emails_sent: list[dict] = Field(default_factory=list)
    customizations: ProposalCustomizations = Field(default_factory=ProposalCustomizations)
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    def to_state(self) -> ProposalState:
        return ProposalState(
            status=self.status,
            sent_at=self.sent_at,
            first_viewed_at=self.first_viewed_at,
            last_viewed_at=self.last_viewed_at,
            accepted_at=self.accepted_at,
            rejected_at=self.rejected_at,
            rejection_reason=self.rejection_reason,
            view_count=self.view_count,
            download_count=self.download_count,
            expires_at=self.expires_at,
            acceptance_data=dict(self.acceptance_data),
        )

    def with_state(self, state: ProposalState, now: datetime) -> "ProposalRecord":
        return self.model_copy(update={
            "status": state.status,
            "sent_at": state.sent_at,
            "first_viewed_at": state.first_viewed_at,
            "last_viewed_at": state.last_viewed_at,
            "accepted_at": state.accepted_at,
            "rejected_at": state.rejected_at,
            "rejection_reason": state.rejection_reason,
            "view_count": state.view_count,
            "download_count": state.download_count,
            "expires_at": state.expires_at,
            "acceptance_data": dict(state.acceptance_data),
            "updated_at": now,
        })


class ProposalViewRecord(BaseModel):
    id: str
    proposal_id: str
    ip_address: str | None = None
    user_agent: str | None = None
    device: dict = Field(default_factory=lambda: {"type": "desktop", "os": None, "browser": None})
    referrer: str | None = None
    duration: int = 0
    actions: dict = Field(default_factory=lambda: {"clicks": [], "scroll_depth": 0})
    created_at: datetime

    def to_event(self) -> ViewEvent:
        return ViewEvent(
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            device_type=self.device.get("type") or "desktop",
            duration_seconds=self.duration,
            viewed_at=self.created_at,
        )


class SendResult(BaseModel):
    proposal_link: str
    whatsapp_link: str | None = None
    status: ProposalStatus
    channels: list[str] = Field(default_factory=list)
    email_sent: bool = False

"""Pydantic models for incident input, extraction output and review state."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Priority = Literal["critical", "high", "medium", "low"]
Urgency = Literal["critical", "high", "medium", "none"]
ExtractionMethod = Literal["keyword", "llm"]
ReviewStatus = Literal["pending", "approved", "corrected", "rejected"]
ReviewDecisionStatus = Literal["approved", "corrected", "rejected"]
ReviewStatusFilter = Literal["pending", "approved", "corrected", "rejected", "all"]
FulfillmentStatus = Literal["pending", "delivered"]


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ContractModel(BaseModel):
    """Base for models that serialize to the camelCase JSON contract."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class IncidentRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    description: str | None = None
    created_at: str | None = None
    responder_name: str | None = None
    severity: str | None = None
    incident_type: str | None = None


class SupplyMention(ContractModel):
    item: str
    category: str
    quantity: int | None = None
    unit: str | None = None
    priority: Priority = "medium"
    icon: str = ""


class VulnerableGroupMention(ContractModel):
    group: str
    count: int | None = None
    special_needs: str | None = None
    priority: Priority = "medium"
    icon: str = ""


class LocationMention(ContractModel):
    type: str
    name: str | None = None
    icon: str = ""


class QuantityMention(ContractModel):
    value: int
    type: str
    context: str


class ExtractionResult(ContractModel):
    incident_id: str = ""
    original_text: str
    supplies: List[SupplyMention] = Field(default_factory=list)
    locations: List[LocationMention] = Field(default_factory=list)
    vulnerable_groups: List[VulnerableGroupMention] = Field(default_factory=list)
    quantities: List[QuantityMention] = Field(default_factory=list)
    urgency: Urgency = "none"
    confidence: float = Field(ge=0.0, le=1.0)
    needs_review: bool = False
    auto_approved: bool = False
    uncertain_items: List[str] = Field(default_factory=list)
    extraction_method: ExtractionMethod = "keyword"
    timestamp: str = Field(default_factory=utc_now_iso)


class AggregatedSupplyNeed(ContractModel):
    key: str
    item: str
    category: str
    total_quantity: int = 0
    unit: str | None = None
    priority: Priority
    incident_count: int = 0
    incidents: List[str] = Field(default_factory=list)
    icon: str = ""
    fulfillment_status: FulfillmentStatus = "pending"


class AggregatedVulnerableGroup(ContractModel):
    group: str
    total_count: int = 0
    incident_count: int = 0
    priority: Priority
    icon: str = ""
    special_needs: List[str] = Field(default_factory=list)


class NamedLocationCount(ContractModel):
    name: str
    incident_count: int = 0


class LocationCategorySummary(ContractModel):
    type: str
    icon: str = ""
    total_incidents: int = 0
    locations: List[NamedLocationCount] = Field(default_factory=list)


class ReviewItem(ContractModel):
    id: str
    incident_id: str
    original_text: str
    extracted_data: Dict[str, Any] = Field(default_factory=dict)
    confidence: float
    reason: str
    status: ReviewStatus = "pending"
    admin_notes: str | None = None
    corrected_data: Dict[str, Any] | None = None
    reviewed_by: str | None = None
    reviewed_at: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)


class ReviewDecision(BaseModel):
    """Boundary model validating an admin decision before any state change."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: ReviewDecisionStatus
    reviewed_by: str = Field(min_length=1)
    admin_notes: str | None = None
    corrected_data: Dict[str, Any] | None = None

    @model_validator(mode="after")
    def validate_corrected_data(self) -> "ReviewDecision":
        if self.corrected_data is not None and self.status != "corrected":
            raise ValueError("corrected_data is only accepted with status 'corrected'")
        return self


class CorrectionRecord(ContractModel):
    id: str
    incident_id: str
    original_text: str
    original_extraction: Dict[str, Any] = Field(default_factory=dict)
    corrected_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now_iso)


class FulfillmentRecord(ContractModel):
    key: str
    status: FulfillmentStatus = "pending"
    updated_at: str = Field(default_factory=utc_now_iso)

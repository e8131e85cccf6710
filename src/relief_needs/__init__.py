from .config import ExtractionConfig
from .extractor import extract, extract_incidents
from .models import (
    AggregatedSupplyNeed,
    AggregatedVulnerableGroup,
    ExtractionResult,
    IncidentRecord,
    LocationCategorySummary,
    ReviewItem,
)

__all__ = [
    "ExtractionConfig",
    "extract",
    "extract_incidents",
    "ExtractionResult",
    "IncidentRecord",
    "AggregatedSupplyNeed",
    "AggregatedVulnerableGroup",
    "LocationCategorySummary",
    "ReviewItem",
]

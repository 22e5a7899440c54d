"""Reporter-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict


class ReporterStatsResponse(BaseModel):
    """Schema for the current principal's reporting statistics."""

    principal_id: str
    total_issues: int
    resolved_issues: int
    pending_issues: int
    spam_reports: int

    model_config = ConfigDict(from_attributes=True)

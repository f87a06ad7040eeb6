"""Opportunity - a discovered grant listing a user can save into the pipeline."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class Opportunity(BaseModel):
    """Normalized opportunity record as shown in discovery results."""

    id: str = Field(..., description="Opportunity identifier")
    title: str = Field(..., description="Opportunity title")
    agency: str = Field(default="", description="Issuing agency")
    opportunity_number: str = Field(default="")
    summary: str = Field(default="")
    url: str = Field(default="", description="Link to source listing")
    close_date: Optional[date] = Field(None, description="Submission deadline")
    posted_date: Optional[date] = Field(None)
    focus_areas: list[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "id": "HHS-2024-ACF-OCS-TE-0001",
                "title": "Community Services Block Grant",
                "agency": "Department of Health and Human Services",
                "opportunity_number": "HHS-2024-ACF-OCS-TE-0001",
                "summary": "CSBG competitive grant program",
                "url": "https://www.grants.gov/search-results-detail/335512",
                "close_date": "2024-03-18",
                "posted_date": "2024-01-15",
                "focus_areas": ["Community Development"],
            }
        }

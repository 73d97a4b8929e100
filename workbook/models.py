"""
Workbook API payload models (Pydantic v2).

Field names match what the API sends (PascalCase). Unknown fields are kept,
since endpoints return far more than any caller reads.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Resource(BaseModel):
    """A person or organisation: employee, client, prospect, contact, ..."""

    model_config = ConfigDict(extra="allow")

    Id: int
    Name: str = ""
    Email: Optional[str] = None
    Initials: str = ""
    Active: bool = True
    TypeId: Optional[int] = Field(default=None, description="See workbook.constants.ResourceType")
    ResponsibleResourceId: Optional[int] = None
    ResourceFolder: Optional[str] = Field(default=None, description="Company/department name")
    ParentResourceId: Optional[int] = None
    Phone1: Optional[str] = None
    City: Optional[str] = None
    Country: Optional[str] = None


class Contact(BaseModel):
    """A contact person within a client company."""

    model_config = ConfigDict(extra="allow")

    Id: int
    Name: str = ""
    Initials: str = ""
    Email: Optional[str] = None
    Phone1: Optional[str] = None
    ParentResourceId: Optional[int] = None
    Active: bool = True


class HierarchicalResource(BaseModel):
    resource: Resource
    contacts: List[Contact] = Field(default_factory=list)
    responsible_employee: Optional[Resource] = None


class JobTeamMember(BaseModel):
    model_config = ConfigDict(extra="allow")

    Id: int
    JobId: int
    ResourceId: int
    BonusPart: Optional[float] = None
    JobAccess: Optional[bool] = None
    PortalAccessType: Optional[int] = None

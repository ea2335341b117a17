"""Typed views of the operations backend responses."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.domain import Collector, Crew, ScrapYard


class _BackendRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _IdentifiedRecord(_BackendRecord):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # numeric ids from the backend are treated as opaque strings
        if isinstance(value, int):
            return str(value)
        return value


class BackendEnvelope(_BackendRecord):
    """Standard response wrapper: ``{version, validationErrors, code, status, message, data}``."""

    version: Optional[str] = None
    validation_errors: List[Any] = Field(default_factory=list, alias="validationErrors")
    code: Optional[int] = None
    status: Optional[str] = None
    message: Optional[str] = None
    data: Any = None


class ScrapYardRecord(_IdentifiedRecord):
    yard_name: str = Field(alias="yardName")
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool = Field(default=False, alias="isActive")

    @field_validator("address", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value if value is not None else ""

    def to_domain(self) -> ScrapYard:
        return ScrapYard(
            yard_id=self.id,
            name=self.yard_name,
            address=self.address,
            latitude=self.latitude,
            longitude=self.longitude,
            is_active=self.is_active,
        )


class EmployeeRecord(_IdentifiedRecord):
    full_name: str = Field(alias="fullName")
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    work_zone: Optional[str] = Field(default=None, alias="workZone")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator("role", mode="before")
    @classmethod
    def _role_name(cls, value: Any) -> Any:
        # Role is either a plain enum string or an embedded role object
        if isinstance(value, dict):
            return value.get("name")
        return value

    def to_domain(self) -> Collector:
        return Collector(
            collector_id=self.id,
            full_name=self.full_name,
            email=self.email,
            phone=self.phone,
            work_zone=self.work_zone,
            is_active=self.is_active,
        )


class CrewMemberRecord(_IdentifiedRecord):
    pass


class CrewRecord(_IdentifiedRecord):
    name: str
    description: Optional[str] = None
    is_active: bool = Field(default=False, alias="isActive")
    members: List[CrewMemberRecord] = Field(default_factory=list)
    member_ids: List[str] = Field(default_factory=list, alias="memberIds")

    @field_validator("member_ids", mode="before")
    @classmethod
    def _coerce_member_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) for item in value]
        return value or []

    @field_validator("members", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []

    def to_domain(self) -> Crew:
        ordered: list[str] = []
        for member_id in [*(member.id for member in self.members), *self.member_ids]:
            if member_id not in ordered:
                ordered.append(member_id)
        return Crew(
            crew_id=self.id,
            name=self.name,
            member_ids=tuple(ordered),
            description=self.description,
            is_active=self.is_active,
        )

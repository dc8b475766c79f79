from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from .errors import InvalidRotationState


def _plain(value: Any) -> Any:
    """Convert DynamoDB Decimals back into ints (or floats) recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


class Member(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    member_id: str = Field(alias="memberId", min_length=1)
    member_name: str | None = Field(default=None, alias="memberName")
    duty_count: int = Field(default=0, alias="dutyCount", ge=0)
    display_order: int | float | None = Field(default=None, alias="displayOrder")

    @classmethod
    def from_item(cls, item: dict) -> "Member":
        item = _plain(item)
        try:
            duty_count = int(item.get("dutyCount") or 0)
        except (TypeError, ValueError):
            duty_count = 0

        display_order = item.get("displayOrder")
        if not isinstance(display_order, (int, float)) or isinstance(display_order, bool):
            display_order = None

        return cls(
            member_id=str(item["memberId"]),
            member_name=item.get("memberName") or item.get("displayName"),
            duty_count=max(duty_count, 0),
            display_order=display_order,
        )

    @property
    def display_name(self) -> str:
        return self.member_name or self.member_id


class _StateBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_item(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class PointerState(_StateBase):
    kind: Literal["pointer"] = "pointer"
    last_assigned_member_id: str = Field(alias="lastAssignedMemberId", min_length=1)
    last_assignment_date: date = Field(alias="lastAssignmentDate")

    @property
    def assignment_date(self) -> date:
        return self.last_assignment_date

    @property
    def current_assignee(self) -> str:
        return self.last_assigned_member_id


class ListCursorState(_StateBase):
    kind: Literal["list_cursor"] = "list_cursor"
    assignment_date: date = Field(alias="assignmentDate")
    rotation_list: list[str] = Field(alias="rotationList", min_length=1)
    current_list_index: int = Field(alias="currentListIndex")
    current_assigned_member_id: str = Field(alias="currentAssignedMemberId")

    @model_validator(mode="after")
    def _check_cursor(self) -> "ListCursorState":
        if len(set(self.rotation_list)) != len(self.rotation_list):
            raise ValueError("rotation list contains duplicate member ids")
        if not 0 <= self.current_list_index < len(self.rotation_list):
            raise ValueError(
                f"cursor {self.current_list_index} is outside a rotation list of {len(self.rotation_list)}"
            )
        if self.rotation_list[self.current_list_index] != self.current_assigned_member_id:
            raise ValueError("cursor does not point at the current assignee")
        return self

    @property
    def current_assignee(self) -> str:
        return self.current_assigned_member_id


RotationState = Annotated[PointerState | ListCursorState, Field(discriminator="kind")]

_state_adapter: TypeAdapter[PointerState | ListCursorState] = TypeAdapter(RotationState)


def parse_state(item: dict) -> PointerState | ListCursorState:
    try:
        return _state_adapter.validate_python(_plain(item))
    except ValidationError as e:
        raise InvalidRotationState(f"Stored rotation state is invalid: {e.error_count()} error(s)") from e


class Selection(BaseModel):
    model_config = ConfigDict(frozen=True)

    member: Member
    list_index: int | None = None

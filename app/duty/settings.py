from datetime import date
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import holidays as holiday_calendars
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationMissing


class Settings(BaseModel):
    """Validated deployment configuration, built once per process."""

    # YAML reads purely numeric ids (e.g. STATE_ID=1) as ints.
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    slack_bot_token: str = Field(min_length=1)
    slack_signing_secret: str = Field(min_length=1)
    slack_channel_id: str = Field(min_length=1)
    members_table_name: str = Field(min_length=1)
    state_table_name: str = Field(min_length=1)
    state_id: str = Field(min_length=1)
    timezone: str = Field(min_length=1)
    policy: Literal["exclusion_rank", "fixed_rotation", "id_rotation"] = "fixed_rotation"
    holiday_country: str | None = "JP"
    holidays: tuple[date, ...] = ()

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown time zone {value!r}") from None
        return value

    @field_validator("holiday_country", mode="before")
    @classmethod
    def _known_country(cls, value):
        if not value:
            return None
        code = str(value).strip().upper()
        if code not in holiday_calendars.list_supported_countries():
            raise ValueError(f"no holiday calendar for country {value!r}")
        return code

    @field_validator("holidays", mode="before")
    @classmethod
    def _split_holidays(cls, value):
        if value is None:
            return ()
        if isinstance(value, date):
            return (value,)
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value

    @classmethod
    def from_config(cls, config: dict) -> "Settings":
        slack = config.get("slack") or {}
        dynamodb = config.get("dynamodb") or {}
        rotation = config.get("rotation") or {}

        values = {
            "slack_bot_token": slack.get("bot_token"),
            "slack_signing_secret": slack.get("signing_secret"),
            "slack_channel_id": slack.get("channel_id"),
            "members_table_name": dynamodb.get("members_table_name"),
            "state_table_name": dynamodb.get("state_table_name"),
            "state_id": dynamodb.get("state_id"),
            "timezone": rotation.get("timezone"),
            "holidays": rotation.get("holidays"),
        }
        if rotation.get("policy"):
            values["policy"] = rotation["policy"]
        if "holiday_country" in rotation:
            values["holiday_country"] = rotation["holiday_country"]

        try:
            return cls(**values)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ConfigurationMissing(f"Missing or invalid configuration: {', '.join(fields)}") from e

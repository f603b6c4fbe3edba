from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


AT_LEAST_ONE_FIELD_MESSAGE = "At least one field must be provided"


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class StrictInput(ApiModel):
    model_config = ConfigDict(extra="forbid")


class StripInput(ApiModel):
    model_config = ConfigDict(extra="ignore")


class _PatchMixin(ApiModel):
    @model_validator(mode="after")
    def require_any_field(self) -> Any:
        if not self.model_fields_set:
            raise ValueError(AT_LEAST_ONE_FIELD_MESSAGE)
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class StrictPatch(_PatchMixin):
    model_config = ConfigDict(extra="forbid")


class StripPatch(_PatchMixin):
    model_config = ConfigDict(extra="ignore")


def reject_null(*fields: str) -> Any:
    """Field validator refusing an explicit null for columns that cannot be cleared."""

    def _check(cls: type[BaseModel], value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    return field_validator(*fields, mode="before")(classmethod(_check))


def strip_blank(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value

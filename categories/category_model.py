from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import Field, field_validator

from schemas.base import ApiModel

UNCATEGORIZED = "Uncategorized"

CategoryType = Literal["Global", "Custom"]


def clean_name(value: Optional[str]) -> Optional[str]:
    # trim, keep original casing for display
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("name must not be blank")
    return value


class CategoryCreate(ApiModel):
    name: str = Field(min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=32)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return clean_name(value)


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=32)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        return clean_name(value)


class Category(ApiModel):
    id: str
    name: str
    color: Optional[str] = None
    user_id: Optional[str] = None
    type: CategoryType

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Category":
        owner = record.get("user_id") or None
        return cls(
            id=record["id"],
            name=record["name"],
            color=record.get("color"),
            user_id=owner,
            type="Custom" if owner else "Global",
        )

"""
Shared building blocks for MongoDB document models.

PyObjectId lets pydantic v2 validate BSON ObjectIds.
UtcDatetime coerces every stored timestamp to aware UTC, since a document
read without ``tz_aware`` (or written by another client) carries naive values.
MongoDocument maps ``_id`` and converts to and from raw pymongo dicts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional, TypeVar

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

from shared.datetime_utils import ensure_utc

DocT = TypeVar("DocT", bound="MongoDocument")

UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class PyObjectId(ObjectId):
    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        # JSON output renders the hex string; python-mode dumps keep the ObjectId
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def coerce(cls, value: Any) -> ObjectId:
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        raise ValueError(f"not an ObjectId: {value!r}")


class MongoDocument(BaseModel):
    """Base for stored documents. Enum fields are kept as their plain values."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict[str, Any]:
        """Raw dict for pymongo. An unset ``_id`` is left for the server to assign."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls: type[DocT], raw: Optional[dict[str, Any]]) -> Optional[DocT]:
        if raw is None:
            return None
        return cls.model_validate(raw)

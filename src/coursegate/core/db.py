"""Document base model and collection names."""

from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pymongo.asynchronous.cursor import AsyncCursor

IDENTITIES = "identities"
NOTIFICATIONS = "notifications"


class MongoModel(BaseModel):
    """Document keyed by a UUID stored as `_id`.

    API responses use separate view models, so the alias is only ever seen by MongoDB.
    """

    id: UUID = Field(default_factory=uuid4, alias="_id")

    model_config = ConfigDict(populate_by_name=True)

    def to_mongo(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    async def list_cursor(cls, cursor: AsyncCursor[dict[str, Any]]) -> list[Self]:
        return [cls.model_validate(doc) async for doc in cursor]

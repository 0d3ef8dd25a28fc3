from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Optional, Type, TypeVar
from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, ConfigDict
from bson import ObjectId

# ObjectIds travel as strings outside the repository layer
PyObjectId = Annotated[str, BeforeValidator(str)]


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

# Mongo hands back naive UTC datetimes, so every stored date is kept that way
UTCDatetime = Annotated[datetime, AfterValidator(_as_naive_utc)]

T = TypeVar("T", bound="MongoModel")

class MongoModel(BaseModel):
    """
    Base model for MongoDB documents with _id handling and serialization helpers.
    """
    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        validate_assignment=False,
    )

    @classmethod
    def from_mongo(cls: Type[T], data: Optional[Dict[str, Any]]) -> Optional[T]:
        """Convert a MongoDB document to the model."""
        if not data:
            return None
        data = dict(data)
        doc_id = data.pop("_id", None)
        return cls(id=doc_id, **data)

    def to_mongo(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Convert the model to a MongoDB document, dropping an unset _id."""
        data = self.model_dump(by_alias=True, exclude_none=exclude_none, mode="python")
        if data.get("_id") is None:
            data.pop("_id", None)
        return data


def to_object_id(value: str) -> Any:
    """Use a real ObjectId when the string is one, otherwise keep the raw key."""
    return ObjectId(value) if ObjectId.is_valid(value) else value

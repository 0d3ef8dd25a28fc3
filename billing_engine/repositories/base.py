from datetime import datetime
from typing import Generic, TypeVar, Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorCollection
from billing_engine.models.base import MongoModel, to_object_id

T = TypeVar("T", bound=MongoModel)

class BaseRepository(Generic[T]):
    def __init__(self, collection: AsyncIOMotorCollection, model_cls: type[T]):
        self.collection = collection
        self.model_cls = model_cls

    async def get(self, id: str) -> Optional[T]:
        """Get a document by ID."""
        doc = await self.collection.find_one({"_id": to_object_id(id)})
        return self.model_cls.from_mongo(doc) if doc else None

    async def get_by_field(self, field: str, value: Any) -> Optional[T]:
        """Get a document by a specific field."""
        doc = await self.collection.find_one({field: value})
        return self.model_cls.from_mongo(doc) if doc else None

    async def find(self, filter: Dict[str, Any], sort: Optional[List[tuple]] = None, limit: int = 0) -> List[T]:
        """All documents matching a filter."""
        cursor = self.collection.find(filter)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=limit or None)
        return [self.model_cls.from_mongo(doc) for doc in docs]

    async def create(self, model: T) -> T:
        """Insert a new document and stamp its generated id on the model."""
        data = model.to_mongo()
        result = await self.collection.insert_one(data)
        model.id = str(result.inserted_id)
        return model

    async def save(self, model: T) -> T:
        """Write back every field of an existing document (last writer wins)."""
        data = model.to_mongo()
        data.pop("_id", None)
        if "updated_at" in self.model_cls.model_fields:
            data["updated_at"] = datetime.utcnow()
            model.updated_at = data["updated_at"]
        await self.collection.update_one(
            {"_id": to_object_id(model.id)},
            {"$set": data}
        )
        return model


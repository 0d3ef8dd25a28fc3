from pydantic import Field
from billing_engine.models.base import MongoModel

class Counter(MongoModel):
    """
    Per-bucket sequence row. The bucket id (e.g. "invoice-2508") is the _id,
    so there is exactly one row per bucket.
    """
    sequence: int = Field(0, ge=0, description="Last value handed out for this bucket")

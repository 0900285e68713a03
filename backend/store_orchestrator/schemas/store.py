from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from store_orchestrator.models.enums import StoreStatus


class CreateStoreRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: str = Field(min_length=1, max_length=64)


class StoreResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    name: str
    type: str
    status: StoreStatus
    url: str
    created_at: datetime = Field(alias="createdAt")


class StoreEventResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    event_type: str = Field(alias="eventType")
    message: str
    created_at: datetime = Field(alias="createdAt")


class StoreDetailResponse(StoreResponse):
    events: list[StoreEventResponse]

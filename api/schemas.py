"""Request and response models for the batch endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AreaSeedRequest(CamelModel):
    start_index: int = Field(0, alias="startIndex", ge=0)
    batch_size: int = Field(5, alias="batchSize", ge=1, le=50)


class AreaSeedCityResult(CamelModel):
    city: str
    imported: int = 0
    skipped: Optional[int] = None
    reviews_imported: Optional[int] = Field(None, alias="reviewsImported")
    errors: Optional[List[str]] = None
    error: Optional[str] = None


class AreaSeedResponse(CamelModel):
    completed: bool
    results: List[AreaSeedCityResult]
    next_index: Optional[int] = Field(None, alias="nextIndex")
    has_more: bool = Field(alias="hasMore")
    processed: int
    total_cities: int = Field(alias="totalCities")
    api_calls_this_batch: int = Field(0, alias="apiCallsThisBatch")


class RadiusImportRequest(CamelModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: Optional[int] = Field(None, ge=1, le=50000)


class RadiusImportDetails(CamelModel):
    imported: List[str]
    skipped: List[str]
    errors: List[str]
    cities_created: List[str] = Field(alias="citiesCreated")


class RadiusImportResponse(CamelModel):
    imported: int
    skipped: int
    errors: int
    cities_created: int = Field(alias="citiesCreated")
    details: RadiusImportDetails


class PhotoRefreshRequest(CamelModel):
    restaurant_id: Optional[str] = Field(None, alias="restaurantId")
    batch_size: int = Field(5, alias="batchSize", ge=1, le=50)
    offset: int = Field(0, ge=0)


class PhotoRefreshResponse(CamelModel):
    processed: int
    photos_downloaded: int = Field(alias="photosDownloaded")
    errors: List[str]
    has_more: bool = Field(alias="hasMore")
    next_offset: Optional[int] = Field(None, alias="nextOffset")
    total_restaurants: int = Field(alias="totalRestaurants")


class CuisineLinkRequest(CamelModel):
    batch_size: int = Field(50, alias="batchSize", ge=1, le=500)
    offset: int = Field(0, ge=0)


class CuisineLinkResponse(CamelModel):
    processed: int
    cuisines_linked: int = Field(alias="cuisinesLinked")
    details: List[str]
    has_more: bool = Field(alias="hasMore")
    next_offset: Optional[int] = Field(None, alias="nextOffset")

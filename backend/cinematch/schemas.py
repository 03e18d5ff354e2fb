"""
schemas.py

Pydantic schemas for request payloads, the movie filter and API responses.
JSON field names are camelCase on the wire.
"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
import datetime
import json

from cinematch.services.tmdb_client import get_backdrop_url, get_poster_url
from cinematch.utils.timezone import format_iso_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TimestampedModel(CamelModel):
    """Timestamps go out as ISO-8601 UTC whatever the backend hands back."""

    @field_serializer("created_at", "updated_at", check_fields=False)
    def _serialize_timestamp(self, value: Optional[datetime.datetime]) -> Optional[str]:
        return format_iso_utc(value)


def _decode_json_list(v):
    if v is None or v == "":
        return []
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except ValueError:
            return []
    return v if isinstance(v, list) else []


# --------------------- Filter ---------------------
class RuntimeBucket(str, Enum):
    ANY = "any"
    UNDER_90 = "under90"
    FROM_90_TO_120 = "90to120"
    OVER_120 = "over120"


class AgeRating(str, Enum):
    G = "G"
    PG = "PG"
    PG_13 = "PG-13"
    R = "R"
    NC_17 = "NC-17"


class SortKey(str, Enum):
    POPULARITY = "popularity"
    RATING = "rating"
    RELEASE_DATE = "release_date"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class MovieFilter(CamelModel):
    genres: Optional[List[int]] = None
    regions: Optional[List[str]] = None  # original language codes
    release_year_from: Optional[int] = Field(None, ge=1, le=9999)
    release_year_to: Optional[int] = Field(None, ge=1, le=9999)
    rating_min: Optional[float] = None
    rating_max: Optional[float] = None
    runtime: Optional[RuntimeBucket] = None
    age_rating: Optional[List[AgeRating]] = None
    sort_by: Optional[SortKey] = None
    sort_order: Optional[SortOrder] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


# --------------------- Responses ---------------------
class GenreSchema(BaseModel):
    id: int
    name: str


class UserSchema(TimestampedModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class MovieSchema(TimestampedModel):
    id: int
    tmdb_id: int
    title: str
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    runtime: Optional[int] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    genres: List[GenreSchema] = []
    original_language: Optional[str] = None
    adult: Optional[bool] = False
    popularity: Optional[float] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @field_validator("genres", mode="before")
    @classmethod
    def _parse_genres(cls, v):
        return _decode_json_list(v)

    @computed_field(alias="posterUrl")
    @property
    def poster_url(self) -> Optional[str]:
        return get_poster_url(self.poster_path)

    @computed_field(alias="backdropUrl")
    @property
    def backdrop_url(self) -> Optional[str]:
        return get_backdrop_url(self.backdrop_path)


class MoviePage(CamelModel):
    movies: List[MovieSchema]
    total: int


class SyncResult(CamelModel):
    synced_movies: List[MovieSchema]
    total: int


class TrailerSchema(CamelModel):
    trailer_url: Optional[str] = None


class ListEntrySchema(TimestampedModel):
    id: int
    user_id: str
    movie_id: int
    created_at: Optional[datetime.datetime] = None


class RatingSchema(TimestampedModel):
    id: int
    user_id: str
    movie_id: int
    rating: float
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class PreferencesSchema(TimestampedModel):
    id: int
    user_id: str
    preferred_genres: List[int] = []
    preferred_languages: List[str] = []
    age_rating: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @field_validator("preferred_genres", "preferred_languages", mode="before")
    @classmethod
    def _parse_lists(cls, v):
        return _decode_json_list(v)


class StatusResponse(BaseModel):
    success: bool = True


# --------------------- Payloads ---------------------
class MovieRef(CamelModel):
    movie_id: int


class RatingCreate(CamelModel):
    movie_id: int
    rating: float = Field(..., ge=0.5, le=5.0)


class PreferencesUpdate(CamelModel):
    preferred_genres: Optional[List[int]] = None
    preferred_languages: Optional[List[str]] = None
    age_rating: Optional[AgeRating] = None


class SyncRequest(CamelModel):
    page: int = Field(1, ge=1)
    pages: int = Field(1, ge=1)

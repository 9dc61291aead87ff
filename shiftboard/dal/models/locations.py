"""
Models for location documents.

Locations are reference data in the `locations` collection; shifts point at them.
"""

from pydantic import BaseModel, Field

from shiftboard.dal.models.common import MongoBaseModel, PyObjectId


class Coordinates(BaseModel):
    longitude: float | None = None
    latitude: float | None = None
    use_rota_cloud: bool = Field(False, alias="useRotaCloud")

    model_config = {"populate_by_name": True, "extra": "allow"}


class Location(MongoBaseModel):
    """
    A location document from the `locations` collection.

    NOTE: The field is spelled `cordinates` in the stored documents.
    """

    id: PyObjectId | None = Field(None, alias="_id")
    name: str
    post_code: str | None = Field(None, alias="postCode")
    distance: float | None = None
    constituency: str | None = None
    admin_district: str | None = Field(None, alias="adminDistrict")
    cordinates: Coordinates | None = None

    model_config = {"extra": "allow"}

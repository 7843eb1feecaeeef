"""Pydantic v2 models mirroring the OneMap elastic search response.

OneMap returns every field as a string, including coordinates, and older
responses spell longitude ``LONGTITUDE``.  Both spellings are accepted and
exposed through :attr:`OneMapResult.longitude`.  Unknown fields are ignored.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OneMapResult(BaseModel):
    """A single ranked search hit."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    search_val: Optional[str] = Field(default=None, alias="SEARCHVAL")
    blk_no: Optional[str] = Field(default=None, alias="BLK_NO")
    road_name: Optional[str] = Field(default=None, alias="ROAD_NAME")
    building: Optional[str] = Field(default=None, alias="BUILDING")
    address: Optional[str] = Field(default=None, alias="ADDRESS")
    postal: Optional[str] = Field(default=None, alias="POSTAL")
    x: Optional[str] = Field(default=None, alias="X")
    y: Optional[str] = Field(default=None, alias="Y")
    latitude: Optional[str] = Field(default=None, alias="LATITUDE")
    longitude_: Optional[str] = Field(default=None, alias="LONGITUDE")
    longtitude: Optional[str] = Field(default=None, alias="LONGTITUDE")

    @property
    def longitude(self) -> Optional[str]:
        return self.longitude_ or self.longtitude

    @property
    def display_address(self) -> str:
        return self.address or self.search_val or ""

    @property
    def postal_code(self) -> Optional[str]:
        if self.postal and self.postal.upper() != "NIL":
            return self.postal
        return None


class OneMapSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    found: int = 0
    total_num_pages: int = Field(default=0, alias="totalNumPages")
    page_num: int = Field(default=1, alias="pageNum")
    results: List[OneMapResult] = Field(default_factory=list)

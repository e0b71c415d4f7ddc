from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RawLandRecord(BaseModel):
    """Wire shape of one item of the land-info endpoint (`data.items[]`).

    The remote schema only ever grows, so unknown keys are kept in
    `model_extra` rather than rejected. All fields are nullable here;
    required-ness is decided by `landb.normalize`.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    region_weight: Optional[int] = Field(default=None, alias="regionWeight")
    region_id: Optional[int] = Field(default=None, alias="regionId")
    x: Optional[int] = None
    y: Optional[int] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    image_status: Optional[str] = Field(default=None, alias="imageStatus")
    level: Optional[int] = None
    on_market: Optional[int] = Field(default=None, alias="onMarket")
    owner_address: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("userAddress", "ownerAddress", "owner_address"),
    )
    token_id: Optional[int] = Field(default=None, alias="tokenId")
    market_x: Optional[int] = Field(default=None, alias="marketX")
    market_y: Optional[int] = Field(default=None, alias="marketY")
    sign_type: Optional[int] = Field(default=None, alias="signType")
    user_token_id: Optional[int] = Field(default=None, alias="userTokenId")
    creator: Optional[str] = None
    notify_exist: Optional[int] = Field(default=None, alias="notifyExist")
    skip_pp: Optional[int] = Field(default=None, alias="skipPp")
    notify_id: Optional[int] = Field(default=None, alias="notifyId")
    island_id: Optional[int] = Field(default=None, alias="islandId")

    def unknown_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

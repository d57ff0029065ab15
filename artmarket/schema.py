"""API 요청 본문 스키마."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PurchaseSchema(BaseModel):
    """구매 요청. ``artPieceIds`` 목록 또는 ``artPieceId`` 하나를 받습니다."""

    art_piece_ids: Optional[list[str]] = Field(None, alias="artPieceIds")
    art_piece_id: Optional[str] = Field(None, alias="artPieceId")

    @model_validator(mode="after")
    def _check_ids(self):
        if self.art_piece_ids is None and not self.art_piece_id:
            raise ValueError("artPieceIds or artPieceId is required")
        return self

    @property
    def ids(self) -> list[str]:
        if self.art_piece_ids is not None:
            return self.art_piece_ids
        return [self.art_piece_id]  # type: ignore


class ToggleSchema(BaseModel):
    art_piece_id: str = Field(..., alias="artPieceId", min_length=1)


class ArtPieceAddSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    artist: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    year: int
    tags: list[str] = []
    url: Optional[str] = None
    image_gallery: list[str] = Field([], alias="imageGallery")
    user_id: Optional[str] = Field(None, alias="userId")
    publish_on_market: bool = Field(False, alias="publishOnMarket")


class UserRegisterSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)


class LoginSchema(BaseModel):
    username: str = ""
    password: str = ""

"""Pydantic schemas for validating service inputs and HTTP payloads."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Strict(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class FeedRequest(_Strict):
    """Page selection for the community feed."""

    page: int = Field(1, ge=1)
    page_size: Optional[int] = Field(None, ge=1, le=100)


class SignUpRequest(_Strict):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class LoginRequest(_Strict):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class ResetRequest(_Strict):
    email: str = Field(min_length=3)


class ResetConfirmRequest(_Strict):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


class ToggleRequest(_Strict):
    outfit_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


class ItemAnalysis(_Strict):
    """One AI item-analysis result plus the uploaded image reference."""

    name: Optional[str] = None
    category: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None
    image_url: Optional[str] = None
    purchase_date: Optional[float] = None
    last_worn: Optional[float] = None


class AddItemsRequest(_Strict):
    user_id: str = Field(min_length=1)
    analyses: List[ItemAnalysis] = Field(min_length=1)


class ItemUpdateRequest(_Strict):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None
    image_url: Optional[str] = None
    purchase_date: Optional[float] = None
    last_worn: Optional[float] = None


class SaveOutfitRequest(_Strict):
    """A generated outfit as returned by the AI client."""

    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    occasion: str = ""
    explanation: str = ""
    item_ids: List[str] = Field(min_length=1)


class RenameOutfitRequest(_Strict):
    name: str = Field(min_length=1)


class UserRef(_Strict):
    user_id: str = Field(min_length=1)


class CommentBody(_Strict):
    user_id: str = Field(min_length=1)
    text: str = Field(min_length=1, max_length=2000)


class ProfileUpdateRequest(_Strict):
    name: Optional[str] = Field(None, min_length=1)
    avatar_url: Optional[str] = None
    try_on_image_url: Optional[str] = None
    style_dna: Optional[Dict[str, Any]] = None


class CommentRequest(_Strict):
    outfit_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    text: str = Field(min_length=1, max_length=2000)


class AchievementCheckRequest(_Strict):
    """Counters are optional; a missing counter is simply not evaluated."""

    wardrobe_size: Optional[int] = Field(None, ge=0)
    saved_outfits_count: Optional[int] = Field(None, ge=0)
    has_shared: Optional[bool] = None


class BulkDeleteRequest(_Strict):
    ids: List[str] = Field(min_length=1)


class TopUsersRequest(_Strict):
    sort_by: Literal["wardrobe_size", "saved_outfits"] = "wardrobe_size"
    limit: int = Field(5, ge=1, le=100)


class ErrorPayload(BaseModel):
    """Body returned by the HTTP surface for every typed failure."""

    error: str
    message: str
    details: Optional[Dict[str, Any]] = None


__all__ = [
    "FeedRequest",
    "SignUpRequest",
    "LoginRequest",
    "ResetRequest",
    "ResetConfirmRequest",
    "ToggleRequest",
    "ItemAnalysis",
    "AddItemsRequest",
    "ItemUpdateRequest",
    "SaveOutfitRequest",
    "RenameOutfitRequest",
    "UserRef",
    "CommentBody",
    "ProfileUpdateRequest",
    "CommentRequest",
    "AchievementCheckRequest",
    "BulkDeleteRequest",
    "TopUsersRequest",
    "ErrorPayload",
]

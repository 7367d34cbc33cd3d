"""Pydantic schema for scenario payloads (hand-written or oracle-generated)."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

EVENT_CATEGORIES = ("미팅", "업무", "개인", "기타")


class _Item(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)


class SubjectSeed(_Item):
    name: str | None = None
    role: str | None = Field(default=None, validation_alias=AliasChoices("role", "position"))
    company: str | None = None
    phone: str | None = None
    email: str | None = None
    gender: str | None = None
    memo: str | None = None


class EventSeed(_Item):
    title: str | None = None
    category: str = "기타"
    location: str | None = None
    participants: str | None = None
    description: str | None = None
    memo: str | None = None
    is_all_day: bool = Field(default=False, validation_alias=AliasChoices("is_all_day", "isAllDay"))

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, v):
        return v if v in EVENT_CATEGORIES else "기타"

    @field_validator("participants", mode="before")
    @classmethod
    def join_participants(cls, v):
        if isinstance(v, list):
            return ", ".join(str(p) for p in v)
        return None if v is None else str(v)


class GiftSeed(_Item):
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "giftName"))
    description: str | None = Field(
        default=None, validation_alias=AliasChoices("description", "giftDescription")
    )
    price: int = 0
    category: str = "기타"
    occasion: str = "기타"
    notes: str | None = None

    @field_validator("category", "occasion", mode="before")
    @classmethod
    def default_label(cls, v):
        return v or "기타"

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v):
        try:
            return int(v or 0)
        except (TypeError, ValueError):
            return 0


class ChatSeed(_Item):
    title: str = "선물 추천 대화"
    messages: list | None = None

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v):
        return v or "선물 추천 대화"

    @field_validator("messages", mode="before")
    @classmethod
    def list_only(cls, v):
        return v if isinstance(v, list) else None


class NoteSeed(_Item):
    content: str | None = None


class Scenario(_Item):
    subjects: list[SubjectSeed] = Field(
        default_factory=list, validation_alias=AliasChoices("subjects", "business_cards")
    )
    events: list[EventSeed] = Field(default_factory=list)
    gifts: list[GiftSeed] = Field(default_factory=list)
    chats: list[ChatSeed] = Field(default_factory=list)
    notes: list[NoteSeed] = Field(
        default_factory=list, validation_alias=AliasChoices("notes", "memos", "memo")
    )

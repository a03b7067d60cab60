"""Data models for Odin.fun API payloads and derived creator aggregates."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_NUMERIC_FIELDS = (
    "price",
    "price_1d",
    "volume",
    "marketcap",
    "holder_count",
    "holder_top",
    "holder_dev",
    "buy_count",
    "sell_count",
)


class OdinToken(BaseModel):
    """Token snapshot from /tokens or /token/{id}.

    Unknown upstream fields are kept (``extra="allow"``). The last four
    fields are derived by the activity classifier on every fetch.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    name: str = ""
    ticker: str = ""
    creator: str = ""
    created_time: datetime
    price: float = 0  # raw, sub-satoshi fixed point
    price_1d: float = 0
    volume: float = 0
    marketcap: float = 0
    holder_count: int = 0
    holder_top: float = 0
    holder_dev: float = 0
    buy_count: int = 0
    sell_count: int = 0
    last_action_time: datetime | None = None
    twitter: str | None = None
    website: str | None = None
    telegram: str | None = None

    price_in_sats: float = 0.0
    price_change_24h: float = 0.0
    is_active: bool = False
    inactive_reason: str = ""

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _null_as_zero(cls, v: object) -> object:
        return 0 if v is None else v

    @field_validator("created_time", "last_action_time")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class OdinTrade(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    user: str = ""
    token: str = ""
    time: datetime | None = None
    buy: bool = False
    amount_btc: float = 0
    amount_token: float = 0
    price: float = 0
    user_username: str | None = None


class OdinUser(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    principal: str
    username: str | None = None
    bio: str | None = None
    image: str | None = None
    created_at: datetime | None = None


class HolderSnapshot(BaseModel):
    """Field-reduced token payload served by /api/token/{id}/holders."""

    id: str
    name: str = ""
    holder_count: int = 0
    holder_top: float = 0
    holder_dev: float = 0

    @field_validator("holder_count", "holder_top", "holder_dev", mode="before")
    @classmethod
    def _null_as_zero(cls, v: object) -> object:
        return 0 if v is None else v


class CreatorPerformance(BaseModel):
    """Aggregate over one creator's token set.

    Serialized with camelCase keys at the HTTP boundary. ``rank`` is only
    set by the ranking service and is not stable across recomputations.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    principal: str
    username: str
    image: str | None = None
    total_tokens: int
    active_tokens: int
    total_volume: float
    btc_volume: float
    success_rate: float
    weighted_score: float
    confidence_score: float
    total_holders: int = 0
    total_trades: int = 0
    last_token_created: datetime | None = None
    total_marketcap: float = 0
    generated_marketcap_btc: float = Field(0, alias="generatedMarketcapBTC")
    generated_marketcap_usd: float = Field(0, alias="generatedMarketcapUSD")
    rank: int | None = None
    tokens: list[OdinToken] = Field(default_factory=list)


class TokenWithCreator(BaseModel):
    """A token joined with its creator aggregate.

    ``creator`` is None when resolution failed, which the UI renders as
    "no data" rather than hiding the token.
    """

    model_config = ConfigDict(frozen=True)

    token: OdinToken
    creator: CreatorPerformance | None = None

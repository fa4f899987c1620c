"""REST payload schemas for the racetime endpoints.

Only the fields the bot reads are declared; everything else in the payload is
ignored.
"""

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
    )


class RaceStatus(BaseSchema):
    """Race status block (``status.value`` is open, in_progress, ...)."""

    value: str


class RaceGoal(BaseSchema):
    """Race goal block."""

    name: str
    custom: bool = False


class RaceSummary(BaseSchema):
    """One entry of ``current_races`` in the category listing."""

    name: str = Field(..., description="Race slug, e.g. smr/lucky-yoshi-1234")
    status: RaceStatus
    goal: RaceGoal
    data_url: str = Field(..., description="Race detail endpoint (path or URL)")

    @property
    def status_value(self) -> str:
        return self.status.value.lower()


class CategoryListing(BaseSchema):
    """``GET /{game_tag}/data`` response."""

    current_races: list[dict] = Field(default_factory=list)


class RaceDetail(BaseSchema):
    """``GET {data_url}`` response."""

    websocket_bot_url: str


class TokenResponse(BaseSchema):
    """``POST /o/token`` response."""

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., ge=0)

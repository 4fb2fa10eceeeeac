"""ABOUTME: Pydantic argument models for the MCP tools.

Arguments use camelCase names on the wire (numResults, followRedirects);
snake_case names are accepted as well.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..common.validation import (
    MAX_QUERY_LENGTH,
    coerce_str_list,
    validate_non_empty_string_field,
    validate_url_field,
)
from ..config import parse_safe_search
from ..searxng import EngineFilter

# ============================================================================
# MODULE-LEVEL CONSTANTS
# ============================================================================

MAX_NUM_RESULTS: int = 100
MAX_PAGENO: int = 50
MAX_PING_MESSAGE_LENGTH: int = 1024

TimeRange = Literal["day", "week", "month", "year"]


class ToolInput(BaseModel):
    """Base for tool argument models."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================================
# PYDANTIC SCHEMAS
# ============================================================================

class SearchInput(ToolInput):
    """Input schema for the search tool."""
    query: str = Field(
        ...,
        description="Search query string",
        max_length=MAX_QUERY_LENGTH,
    )
    engines: Optional[Union[List[str], str]] = Field(
        default=None,
        description="Engines to query, as a list or comma-separated string (defaults to server config)",
    )
    categories: Optional[Union[List[str], str]] = Field(
        default=None,
        description="Categories to search, as a list or comma-separated string (e.g. general, news)",
    )
    language: Optional[str] = Field(
        default=None,
        description="Search language code (e.g. en, de, all)",
    )
    safe_search: Optional[Union[int, str]] = Field(
        default=None,
        description="Safe search level: 0/none, 1/moderate, 2/strict",
    )
    num_results: Optional[int] = Field(
        default=None,
        description="Maximum number of results to return (0 for no limit)",
        ge=0,
        le=MAX_NUM_RESULTS,
    )
    pageno: Optional[int] = Field(
        default=None,
        description="Result page number, starting at 1",
        ge=1,
        le=MAX_PAGENO,
    )
    time_range: Optional[TimeRange] = Field(
        default=None,
        description="Restrict results to the past day, week, month or year",
    )

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        return validate_non_empty_string_field(v, field_name="query")

    @field_validator("engines", "categories")
    @classmethod
    def split_lists(cls, v: Optional[Union[List[str], str]]) -> Optional[List[str]]:
        if v is None:
            return None
        items = coerce_str_list(v)
        return items or None

    @field_validator("safe_search")
    @classmethod
    def validate_safe_search(cls, v: Optional[Union[int, str]]) -> Optional[int]:
        if v is None:
            return None
        return parse_safe_search(v)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class BrowseInput(ToolInput):
    """Input schema for the browse tool."""
    url: str = Field(
        ...,
        description="Absolute http(s) URL to fetch",
    )
    follow_redirects: Optional[bool] = Field(
        default=None,
        description="Follow HTTP redirects for this call (defaults to server config)",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return validate_url_field(v)


class EnginesInput(ToolInput):
    """Input schema for the engines tool."""
    filter: EngineFilter = Field(
        default=EngineFilter.ENABLED,
        description="Which engines to list: enabled, disabled or all",
    )


class HealthInput(ToolInput):
    """Input schema for the health tool."""
    include_engines: bool = Field(
        default=False,
        description="Also count the enabled engines",
    )


class PingInput(ToolInput):
    """Input schema for the ping tool."""
    message: Optional[str] = Field(
        default=None,
        description="Text to echo back (defaults to 'pong')",
        max_length=MAX_PING_MESSAGE_LENGTH,
    )

"""ABOUTME: Layered configuration with pydantic-settings - CLI flags, environment, TOML file, defaults.

Each section of the config is a BaseSettings class whose sources are, in
order of precedence: CLI flags (passed as init values), environment
variables, the section's table in the TOML file, then the field default.
pydantic-settings merges the sources field by field, so a CLI flag overrides
one field without hiding the file's value for its siblings.

The result is an EffectiveConfig: a frozen pydantic model that is built once
at startup and shared read-only by every request.
"""

import logging
import tomllib
from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, Iterator, Mapping, NamedTuple, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    InitSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
)

from . import DEFAULT_USER_AGENT
from .common.error_handling import ConfigError
from .common.mcp_base import LOG_LEVELS
from .common.validation import coerce_str_list

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """The closed set of tools this server knows about."""
    SEARCH = "search"
    BROWSE = "browse"
    ENGINES = "engines"
    HEALTH = "health"
    PING = "ping"


class Transport(str, Enum):
    STDIO = "stdio"
    STREAMABLE_HTTP = "streamable-http"


DEFAULT_TOOLS: FrozenSet[ToolName] = frozenset({ToolName.SEARCH, ToolName.BROWSE})

SAFE_SEARCH_NAMES: Dict[str, int] = {"none": 0, "off": 0, "moderate": 1, "strict": 2}

# CLI entries that are not config fields
CLI_ONLY_KEYS = frozenset({"config", "verbose"})


# ============================================================================
# Value parsing
# ============================================================================

def parse_safe_search(value: Any) -> int:
    """Parse a safe-search level from 0/1/2 or none/moderate/strict."""
    if isinstance(value, bool):
        raise ValueError("expected 0, 1, 2, none, moderate or strict")
    if isinstance(value, int):
        level = value
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in SAFE_SEARCH_NAMES:
            return SAFE_SEARCH_NAMES[text]
        if not text.isdigit():
            raise ValueError(f"expected 0, 1, 2, none, moderate or strict, got {value!r}")
        level = int(text)
    else:
        raise ValueError(f"expected 0, 1, 2, none, moderate or strict, got {type(value).__name__}")
    if level not in (0, 1, 2):
        raise ValueError(f"safe search level must be 0, 1 or 2, got {level}")
    return level


def parse_str_list(value: Any, lowercase: bool = False) -> Tuple[str, ...]:
    """Parse a comma-separated string or a sequence of strings."""
    if not isinstance(value, (str, list, tuple, set, frozenset)):
        raise ValueError(f"expected a list or comma-separated string, got {type(value).__name__}")
    return tuple(coerce_str_list(value, lowercase=lowercase))


def parse_tools(value: Any) -> FrozenSet[ToolName]:
    """Parse a tool allowlist, rejecting names that are not known tools."""
    names = parse_str_list(value, lowercase=True)
    valid = {t.value for t in ToolName}
    unknown = [n for n in names if n not in valid]
    if unknown:
        raise ValueError(
            f"unknown tools: {','.join(unknown)} (valid: {','.join(t.value for t in ToolName)})"
        )
    return frozenset(ToolName(n) for n in names)


# ============================================================================
# Settings sources
# ============================================================================

class ResolveInputs(NamedTuple):
    """Explicit inputs of the resolve() call in progress."""
    document: Mapping[str, Any]
    env: Optional[Mapping[str, str]]
    defaults: Mapping[str, Any]


_inputs: ContextVar[ResolveInputs] = ContextVar(
    "searxng_mcp_resolve_inputs", default=ResolveInputs(MappingProxyType({}), None, MappingProxyType({}))
)


@contextmanager
def _resolving(inputs: ResolveInputs) -> Iterator[None]:
    token = _inputs.set(inputs)
    try:
        yield
    finally:
        _inputs.reset(token)


class SectionEnvSource(EnvSettingsSource):
    """Environment source for one section.

    Reads the mapping passed to resolve() instead of os.environ when one was
    given, honours names outside the env_prefix + field pattern, and treats
    blank values (empty or whitespace only) as unset.
    """

    def _load_env_vars(self) -> Mapping[str, Optional[str]]:
        env = _inputs.get().env
        if env is None:
            return super()._load_env_vars()
        return {
            (name if self.case_sensitive else name.lower()): value
            for name, value in env.items()
            if not (self.env_ignore_empty and value == "")
        }

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        env_name = self.settings_cls.env_names.get(field_name)
        if env_name is None:
            value, key, is_complex = super().get_field_value(field, field_name)
        else:
            if not self.case_sensitive:
                env_name = env_name.lower()
            value, key, is_complex = self.env_vars.get(env_name), field_name, False
        if isinstance(value, str) and not value.strip():
            value = None
        return value, key, is_complex


class SectionTableSource(InitSettingsSource):
    """Values for one section out of a nested document (config file or defaults).

    The section's table is used, or the top-level keys that are fields when
    the section has no table.
    """

    def __init__(self, settings_cls: Type["SectionSettings"], document: Mapping[str, Any]):
        if settings_cls.file_table:
            values = dict(document.get(settings_cls.file_table) or {})
        else:
            values = {k: v for k, v in document.items() if k in settings_cls.model_fields}
        super().__init__(settings_cls, values)


class SectionSettings(BaseSettings):
    """One config section, resolved CLI > environment > file > default per field."""
    model_config = SettingsConfigDict(
        frozen=True,
        extra="forbid",
        env_ignore_empty=True,
        str_strip_whitespace=True,
    )

    # TOML table holding this section; None reads top-level keys
    file_table: ClassVar[Optional[str]] = None
    # Environment names that do not follow env_prefix + field name
    env_names: ClassVar[Dict[str, str]] = {}

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        inputs = _inputs.get()
        return (
            init_settings,
            SectionEnvSource(settings_cls),
            SectionTableSource(settings_cls, inputs.document),
            SectionTableSource(settings_cls, inputs.defaults),
        )


# ============================================================================
# Config sections
# ============================================================================

class SearxngSettings(SectionSettings):
    """Aggregator connection and default search parameters."""
    model_config = SettingsConfigDict(env_prefix="SEARXNG_")
    file_table: ClassVar[Optional[str]] = "searxng"
    env_names: ClassVar[Dict[str, str]] = {"language": "SEARXNG_DEFAULT_LANGUAGE"}

    base_url: str = "http://localhost:8080"
    default_engines: Annotated[Tuple[str, ...], NoDecode] = ()
    default_categories: Annotated[Tuple[str, ...], NoDecode] = ()
    language: str = "en"
    safe_search: int = Field(default=0, ge=0, le=2)
    num_results: int = Field(default=5, ge=0)
    timeout_secs: float = Field(default=20.0, gt=0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("default_engines", "default_categories", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Tuple[str, ...]:
        return parse_str_list(v)

    @field_validator("safe_search", mode="before")
    @classmethod
    def validate_safe_search(cls, v: Any) -> int:
        return parse_safe_search(v)


class BrowseSettings(SectionSettings):
    """Outbound fetch limits and SSRF policy."""
    model_config = SettingsConfigDict(env_prefix="BROWSE_")
    file_table: ClassVar[Optional[str]] = "browse"

    follow_redirects: bool = False
    max_redirects: int = Field(default=10, ge=0, le=100)
    max_bytes: int = Field(default=2_000_000, gt=0)
    timeout_secs: float = Field(default=20.0, gt=0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    allowed_hosts: Annotated[Tuple[str, ...], NoDecode] = ()
    allow_private: bool = False

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def normalize_hosts(cls, v: Any) -> Tuple[str, ...]:
        # Ordered, de-duplicated, lower-cased, no trailing dot
        hosts = (h.rstrip(".") for h in parse_str_list(v, lowercase=True))
        return tuple(dict.fromkeys(h for h in hosts if h))


class ServerSettings(SectionSettings):
    """Transport selection and logging."""
    model_config = SettingsConfigDict(env_prefix="SEARXNG_MCP_")
    file_table: ClassVar[Optional[str]] = "server"

    transport: Transport = Transport.STDIO
    bind: str = "127.0.0.1:3344"
    path: str = "/mcp"
    log_level: str = "warning"

    @field_validator("transport", mode="before")
    @classmethod
    def lower_transport(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("bind")
    @classmethod
    def validate_bind(cls, v: str) -> str:
        host, sep, port = v.rpartition(":")
        if not sep or not host:
            raise ValueError("must be host:port")
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"invalid port {port!r}")
        return v

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("must start with /")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.lower()
        if v not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return v

    @property
    def host(self) -> str:
        return self.bind.rpartition(":")[0].strip("[]")

    @property
    def port(self) -> int:
        return int(self.bind.rpartition(":")[2])


class StreamableHttpSettings(SectionSettings):
    """Session mode and SSE timings of the streamable-HTTP transport."""
    model_config = SettingsConfigDict(env_prefix="STREAMABLE_HTTP_")
    file_table: ClassVar[Optional[str]] = "streamable_http"
    env_names: ClassVar[Dict[str, str]] = {
        "stateful_mode": "STREAMABLE_HTTP_STATEFUL",
        "sse_keep_alive_secs": "STREAMABLE_HTTP_SSE_KEEP_ALIVE",
        "sse_retry_secs": "STREAMABLE_HTTP_SSE_RETRY",
    }

    stateful_mode: bool = True
    sse_keep_alive_secs: float = Field(default=15.0, ge=0)
    sse_retry_secs: Optional[float] = Field(default=None, gt=0)


class ToolSettings(SectionSettings):
    """The tool allowlist (top-level ``tools`` in the file)."""
    model_config = SettingsConfigDict(env_prefix="SEARXNG_MCP_")

    tools: Annotated[FrozenSet[ToolName], NoDecode] = DEFAULT_TOOLS

    @field_validator("tools", mode="before")
    @classmethod
    def validate_tools(cls, v: Any) -> FrozenSet[ToolName]:
        tools = parse_tools(v)
        if not tools:
            raise ValueError("at least one tool must be enabled")
        return tools


# Section name in EffectiveConfig (and in CLI keys) -> settings class
SECTIONS: Tuple[Tuple[str, Type[SectionSettings]], ...] = (
    ("searxng", SearxngSettings),
    ("browse", BrowseSettings),
    ("server", ServerSettings),
    ("streamable_http", StreamableHttpSettings),
    ("", ToolSettings),
)


class FileConfig(BaseModel):
    """Top-level shape of the TOML file; each table is checked by its section."""
    model_config = ConfigDict(extra="forbid")

    tools: Any = None
    searxng: Dict[str, Any] = Field(default_factory=dict)
    browse: Dict[str, Any] = Field(default_factory=dict)
    server: Dict[str, Any] = Field(default_factory=dict)
    streamable_http: Dict[str, Any] = Field(default_factory=dict)


class EffectiveConfig(BaseModel):
    """The single, immutable configuration of a running server."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    searxng: SearxngSettings = Field(default_factory=SearxngSettings)
    browse: BrowseSettings = Field(default_factory=BrowseSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    streamable_http: StreamableHttpSettings = Field(default_factory=StreamableHttpSettings)
    tools: FrozenSet[ToolName] = DEFAULT_TOOLS

    @field_validator("tools", mode="before")
    @classmethod
    def validate_tools(cls, v: Any) -> FrozenSet[ToolName]:
        return ToolSettings.validate_tools(v)


# ============================================================================
# Resolution
# ============================================================================

def _config_error(error: ValidationError, section: str = "") -> ConfigError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    if section:
        field = f"{section}.{field}" if field else section
    return ConfigError(field or "config", first["msg"])


def _cli_sections(cli: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Group "section.field" CLI keys by section; unset (None) flags are dropped."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for key, value in cli.items():
        if value is None or key in CLI_ONLY_KEYS:
            continue
        section, _, name = key.rpartition(".")
        grouped.setdefault(section, {})[name] = value
    return grouped


def resolve(
    defaults: Optional[EffectiveConfig] = None,
    file_config: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    cli: Optional[Mapping[str, Any]] = None,
) -> EffectiveConfig:
    """Merge all configuration sources into an EffectiveConfig.

    Args:
        defaults: Config whose values stand in for the built-in defaults
        file_config: Parsed config file contents, if a file was given
        env: Environment variables (os.environ when omitted)
        cli: Parsed CLI flags keyed "section.field" ("tools" for the allowlist);
            a value of None means "flag not given"

    Returns:
        The frozen effective configuration

    Raises:
        ConfigError: On unknown file keys, unparseable or out-of-range values
    """
    document = dict(file_config or {})
    try:
        FileConfig.model_validate(document)
    except ValidationError as e:
        raise _config_error(e) from e

    overrides = _cli_sections(cli or {})
    unknown = set(overrides) - {name for name, _ in SECTIONS}
    if unknown:
        raise ConfigError(sorted(unknown)[0], "unknown config section")

    base = defaults.model_dump() if defaults is not None else {}
    sections: Dict[str, SectionSettings] = {}
    with _resolving(ResolveInputs(document, env, base)):
        for name, settings_cls in SECTIONS:
            try:
                sections[name] = settings_cls(**overrides.get(name, {}))
            except ValidationError as e:
                raise _config_error(e, name) from e
            except SettingsError as e:
                raise ConfigError(name or "tools", str(e)) from e

    tool_settings = sections.pop("")
    config = EffectiveConfig(**sections, tools=tool_settings.tools)
    logger.debug(f"Resolved config: {config.model_dump(mode='json')}")
    return config


# ============================================================================
# Loading
# ============================================================================

class ConfigLocation(SectionSettings):
    """Config file path from SEARXNG_MCP_CONFIG, used when --config is not given."""
    model_config = SettingsConfigDict(env_prefix="SEARXNG_MCP_")

    config: Optional[str] = None


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML config file.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML
    """
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError("config", f"failed to read config {path}: {e.strerror or e}") from e
    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigError("config", f"failed to parse TOML {path}: {e}") from e


def load_config(
    cli: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> EffectiveConfig:
    """Locate the config file (--config, then SEARXNG_MCP_CONFIG) and resolve everything."""
    cli = cli or {}
    config_path = cli.get("config")
    if not config_path:
        with _resolving(ResolveInputs(MappingProxyType({}), env, MappingProxyType({}))):
            config_path = ConfigLocation().config

    file_config = None
    if config_path:
        file_config = load_config_file(Path(config_path))
        logger.info(f"Loaded config file {config_path}")

    return resolve(file_config=file_config, env=env, cli=cli)

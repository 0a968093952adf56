"""Component and config schemas.

Per KERNEL_PHILOSOPHY: Registries own the manifest format, this library only
reads the fields it needs (name, dependencies, MCP servers, files and the
opencode.json contributions).
"""

from enum import Enum
from pathlib import Path
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class RegistryConfig(BaseModel):
    """A named HTTP registry serving component manifests."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str


class ComponentFile(BaseModel):
    """A file shipped by a component.

    Registries may list a bare string, which is both source path and install target.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    target: str


def _normalize_mcp_server(server: Any) -> Any:
    """Expand URL shorthand into a remote server object."""
    if isinstance(server, str):
        return {"type": "remote", "url": server, "enabled": True}
    return server


class ComponentOpencodeConfig(BaseModel):
    """Settings a component contributes to the downstream tool's opencode.json."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    plugins: list[str] = Field(default_factory=list)
    agent: dict[str, dict[str, Any]] = Field(default_factory=dict)
    instructions: list[str] = Field(default_factory=list)
    tools: dict[str, bool] = Field(default_factory=dict)


class ComponentManifest(BaseModel):
    """
    Component manifest as served by a registry.

    Unknown manifest fields are ignored; the resolver only needs identity,
    dependencies, MCP servers, files and the settings it aggregates into
    opencode.json (npm packages, disabled tools, plugins, agent configs,
    instructions).

    mcp_scope "agent" binds an agent component's MCP servers to that agent
    only; "global" leaves them enabled for every agent.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    type: str = ""
    description: str = ""
    dependencies: list[str] = Field(default_factory=list)
    mcp_servers: dict[str, Any] = Field(default_factory=dict, alias="mcpServers")
    mcp_scope: Literal["agent", "global"] = Field(default="agent", alias="mcpScope")
    files: list[ComponentFile] = Field(default_factory=list)
    npm_dependencies: list[str] = Field(default_factory=list, alias="npmDependencies")
    npm_dev_dependencies: list[str] = Field(default_factory=list, alias="npmDevDependencies")
    disabled_tools: list[str] = Field(default_factory=list, alias="disabledTools")
    opencode: ComponentOpencodeConfig = Field(default_factory=ComponentOpencodeConfig)

    @field_validator("mcp_servers", mode="before")
    @classmethod
    def _expand_mcp_shorthand(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {name: _normalize_mcp_server(server) for name, server in value.items()}
        return value

    @field_validator("files", mode="before")
    @classmethod
    def _expand_file_shorthand(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"path": item, "target": item} if isinstance(item, str) else item for item in value]
        return value


class ResolvedComponent(ComponentManifest):
    """Manifest plus the registry it was found in."""

    registry_name: str
    base_url: str


class AgentMcpBinding(BaseModel):
    """MCP servers that only one agent may use."""

    model_config = ConfigDict(frozen=True)

    agent_name: str
    server_names: list[str]


class ResolvedDependencies(BaseModel):
    """
    Install plan produced by the dependency resolver (dependencies first).

    Aggregated lists are de-duplicated in install order; agent_configs is a
    deep merge where later components win.
    """

    model_config = ConfigDict(frozen=True)

    components: list[ResolvedComponent] = Field(default_factory=list)
    install_order: list[str] = Field(default_factory=list)
    mcp_servers: dict[str, Any] = Field(default_factory=dict)
    agent_mcp_bindings: list[AgentMcpBinding] = Field(default_factory=list)
    npm_dependencies: list[str] = Field(default_factory=list)
    npm_dev_dependencies: list[str] = Field(default_factory=list)
    disabled_tools: list[str] = Field(default_factory=list)
    plugins: list[str] = Field(default_factory=list)
    agent_configs: dict[str, dict[str, Any]] = Field(default_factory=dict)
    instructions: list[str] = Field(default_factory=list)


class ConfigScope(str, Enum):
    """Source of configuration values."""

    LOCAL = "local"
    PROFILE = "profile"


class ConfigOrigin(BaseModel):
    """Where a resolved configuration value came from."""

    model_config = ConfigDict(frozen=True)

    scope: ConfigScope
    path: Path


class ResolvedConfig(BaseModel):
    """
    Configuration for one operation.

    registries, include, exclude and component_path come from exactly one scope:
    the active profile when there is one, otherwise the local project.
    instructions lists absolute paths of rule files for the downstream tool.
    """

    model_config = ConfigDict(frozen=True)

    registries: dict[str, RegistryConfig] = Field(default_factory=dict)
    opencode: dict[str, Any] = Field(default_factory=dict)
    profile_name: str | None = None
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    component_path: str = ".opencode"
    instructions: list[str] = Field(default_factory=list)


class ResolvedConfigWithOrigin(BaseModel):
    """Resolved configuration plus per-key provenance (dotted key paths)."""

    model_config = ConfigDict(frozen=True)

    config: ResolvedConfig
    origins: dict[str, ConfigOrigin] = Field(default_factory=dict)

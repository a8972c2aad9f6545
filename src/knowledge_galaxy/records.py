"""Raw record shapes accepted from manifests and adapter payloads.

These are validated with pydantic before they become graph nodes; a record
that fails validation is dropped from its batch, not fatal to it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SkillRecord(_Record):
    name: str
    description: str = ""
    category: str | None = None
    path: str = ""
    enabled: bool = True
    plugin: str | None = None
    subagent_type: str | None = Field(default=None, alias="subagentType")


class McpServerRecord(_Record):
    name: str
    description: str = ""
    command: str | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    enabled: bool = True
    tools: list[str] = Field(default_factory=list)
    # origin directory, e.g. "mcp-local"
    source: str | None = None


class PluginRecord(_Record):
    name: str
    version: str = "1.0.0"
    description: str = ""
    path: str = ""
    enabled: bool = True
    config: dict[str, Any] = Field(default_factory=dict)
    skills: list[str] = Field(default_factory=list)


class ProjectFileRecord(_Record):
    path: str
    name: str
    type: str = "file"  # file | folder
    category: str | None = None
    imports: list[str] = Field(default_factory=list)


class RawNode(_Record):
    id: str
    kind: str = Field(default="document", alias="type")
    title: str = ""
    description: str = ""
    source_path: str = Field(default="", alias="sourcePath")
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    importance: float = Field(default=0.0, ge=0.0, le=1.0)
    enabled: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class RawConnection(_Record):
    source: str
    target: str
    kind: str = Field(default="related", alias="type")
    strength: float = Field(default=1.0, ge=0.0, le=1.0)

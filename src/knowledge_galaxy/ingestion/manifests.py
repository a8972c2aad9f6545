"""Resolve agent-config manifests under a root directory into records.

Layout on disk::

    <root>/skills/<name>/skill.json
    <root>/mcp-*/mcp-config.json        {"mcpServers": {<name>: {...}}}
    <root>/plugins/<name>/package.json
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from ..fs import FileEntry, FileSystem
from ..records import McpServerRecord, PluginRecord, SkillRecord

logger = logging.getLogger(__name__)

SKILLS_DIR = "skills"
PLUGINS_DIR = "plugins"
MCP_DIR_PREFIX = "mcp-"
SKILL_MANIFEST = "skill.json"
MCP_MANIFEST = "mcp-config.json"
PLUGIN_MANIFEST = "package.json"
DEFAULT_SKILL_CATEGORY = "general"

R = TypeVar("R", bound=BaseModel)


class MalformedManifest(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class ConfigStats:
    total_skills: int = 0
    enabled_skills: int = 0
    total_mcps: int = 0
    enabled_mcps: int = 0
    total_plugins: int = 0
    enabled_plugins: int = 0


@dataclass(slots=True)
class ConfigSnapshot:
    skills: list[SkillRecord] = field(default_factory=list)
    mcps: list[McpServerRecord] = field(default_factory=list)
    plugins: list[PluginRecord] = field(default_factory=list)

    def stats(self) -> ConfigStats:
        return ConfigStats(
            total_skills=len(self.skills),
            enabled_skills=sum(1 for s in self.skills if s.enabled),
            total_mcps=len(self.mcps),
            enabled_mcps=sum(1 for m in self.mcps if m.enabled),
            total_plugins=len(self.plugins),
            enabled_plugins=sum(1 for p in self.plugins if p.enabled),
        )


def dedupe_by_name(records: Iterable[R]) -> list[R]:
    """Keep one record per name; the last one wins but keeps the first one's slot."""
    by_name: dict[str, R] = {}
    for r in records:
        by_name[r.name] = r  # type: ignore[attr-defined]
    return list(by_name.values())


def _join(*parts: str) -> str:
    return "/".join(p.rstrip("/\\") for p in parts[:-1]) + "/" + parts[-1]


class ManifestLoader:
    """Reads skill, MCP and plugin manifests through a FileSystem.

    A missing category directory yields no records, a missing manifest
    yields default records, a manifest that is present but unparsable is
    logged and excluded.
    """

    def __init__(self, fs: FileSystem):
        self.fs = fs

    async def load(self, root: str) -> ConfigSnapshot:
        root = os.path.expanduser(root)
        skills, mcps, plugins = await asyncio.gather(
            self.load_skills(root),
            self.load_mcps(root),
            self.load_plugins(root),
        )
        logger.info(
            "Loaded config from %s: %d skills, %d mcp servers, %d plugins",
            root,
            len(skills),
            len(mcps),
            len(plugins),
        )
        return ConfigSnapshot(skills=skills, mcps=mcps, plugins=plugins)

    async def load_skills(self, root: str) -> list[SkillRecord]:
        dirs = await self._subdirectories(_join(root, SKILLS_DIR))
        loaded = await asyncio.gather(*(self._load_skill(d) for d in dirs))
        return dedupe_by_name(r for r in loaded if r is not None)

    async def load_plugins(self, root: str) -> list[PluginRecord]:
        dirs = await self._subdirectories(_join(root, PLUGINS_DIR))
        loaded = await asyncio.gather(*(self._load_plugin(d) for d in dirs))
        return dedupe_by_name(r for r in loaded if r is not None)

    async def load_mcps(self, root: str) -> list[McpServerRecord]:
        dirs = [d for d in await self._subdirectories(root) if d.name.startswith(MCP_DIR_PREFIX)]
        batches = await asyncio.gather(*(self._load_mcp_dir(d) for d in dirs))
        return dedupe_by_name(r for batch in batches for r in batch)

    async def _subdirectories(self, path: str) -> list[FileEntry]:
        try:
            entries = await self.fs.list_directory(path)
        except OSError as e:
            logger.debug("No manifest directory %s: %s", path, e)
            return []
        return sorted((e for e in entries if e.is_directory), key=lambda e: e.name)

    async def _read_json(self, path: str) -> Any | None:
        """Parsed JSON, or None when the file does not exist."""
        try:
            text = await self.fs.read_text(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise MalformedManifest(f"cannot read {path}: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedManifest(f"{path} is not JSON: {e}") from e

    async def _load_skill(self, entry: FileEntry) -> SkillRecord | None:
        path = _join(entry.path, SKILL_MANIFEST)
        try:
            data = await self._read_json(path)
            if data is None:
                return SkillRecord(
                    name=entry.name,
                    description=f"Skill: {entry.name}",
                    category=DEFAULT_SKILL_CATEGORY,
                    path=entry.path,
                )
            if not isinstance(data, dict):
                raise MalformedManifest(f"{path} must contain an object")
            return SkillRecord.model_validate(
                {
                    **data,
                    "name": entry.name,
                    "path": entry.path,
                    "category": data.get("category") or DEFAULT_SKILL_CATEGORY,
                    "description": data.get("description") or "",
                    "enabled": data.get("enabled") is not False,
                }
            )
        except (MalformedManifest, ValidationError) as e:
            logger.warning("Skipping skill %s: %s", entry.name, e)
            return None

    async def _load_plugin(self, entry: FileEntry) -> PluginRecord | None:
        path = _join(entry.path, PLUGIN_MANIFEST)
        try:
            data = await self._read_json(path)
            if data is None:
                return PluginRecord(name=entry.name, description=f"Plugin: {entry.name}", path=entry.path)
            if not isinstance(data, dict):
                raise MalformedManifest(f"{path} must contain an object")
            return PluginRecord.model_validate(
                {
                    "name": entry.name,
                    "version": data.get("version") or "1.0.0",
                    "description": data.get("description") or "",
                    "path": entry.path,
                    "enabled": True,
                    "config": data.get("claudeConfig") or {},
                }
            )
        except (MalformedManifest, ValidationError) as e:
            logger.warning("Skipping plugin %s: %s", entry.name, e)
            return None

    async def _load_mcp_dir(self, entry: FileEntry) -> list[McpServerRecord]:
        path = _join(entry.path, MCP_MANIFEST)
        try:
            data = await self._read_json(path)
        except MalformedManifest as e:
            logger.warning("Skipping %s: %s", entry.name, e)
            return []
        if data is None:
            return []
        servers = data.get("mcpServers") if isinstance(data, dict) else None
        if not isinstance(servers, dict):
            logger.warning("%s has no mcpServers mapping", path)
            return []

        out: list[McpServerRecord] = []
        for name, conf in servers.items():
            conf = conf if isinstance(conf, dict) else {}
            try:
                out.append(
                    McpServerRecord.model_validate(
                        {
                            **conf,
                            "name": name,
                            "description": conf.get("description") or "",
                            "args": conf.get("args") or [],
                            "env": conf.get("env") or {},
                            "enabled": conf.get("enabled") is not False,
                            "source": entry.name,
                        }
                    )
                )
            except ValidationError as e:
                logger.warning("Skipping mcp server %s in %s: %s", name, entry.name, e)
        return out


def sample_snapshot() -> ConfigSnapshot:
    """Demo data for callers that explicitly opt into a fallback."""
    return ConfigSnapshot(
        skills=[
            SkillRecord(name="agent-browser", description="Browser automation agent", category="automation",
                        path="/sample/skills/agent-browser"),
            SkillRecord(name="processing-creative", description="Creative coding with Processing",
                        category="creative", path="/sample/skills/processing-creative"),
            SkillRecord(name="ui-ux-pro-max", description="UI/UX design expert", category="design",
                        path="/sample/skills/ui-ux-pro-max"),
        ],
        mcps=[
            McpServerRecord(name="playwright", description="Playwright browser automation", command="npx",
                            args=["@playwright/mcp"]),
            McpServerRecord(name="firebase", description="Firebase MCP service", command="firebase-mcp"),
        ],
        plugins=[
            PluginRecord(name="backend-development", description="Backend development plugin",
                         path="/sample/plugins/backend-development"),
            PluginRecord(name="frontend-design", description="Frontend design plugin",
                         path="/sample/plugins/frontend-design"),
        ],
    )

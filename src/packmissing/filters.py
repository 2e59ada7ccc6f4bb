"""Ignore-list configuration and the per-edition filter sets derived from it."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .settings import Settings

SETTING_ALLOWED_EXTENSIONS = 'filters.allowed_extensions'
SETTING_IGNORED = 'filters.ignored'
SETTING_IGNORE_FILE = 'filters.ignore_file'

DEFAULT_ALLOWED_EXTENSIONS = ('png', 'tga')

# Edition whose modded textures can be inspected
MODDED_EDITION = 'java'

# Keys of an ignore file that are not edition names
_RESERVED_KEYS = {'allowed_extensions', 'modded'}


def normalize_entry(entry: str) -> str:
    """Normalize an ignore entry, keeping a trailing separator.

    "item/" must only match inside the item directory, not in "items_extra".
    """
    normalized = os.path.normpath(entry)
    if entry.endswith(('/', os.sep)) and not normalized.endswith(os.sep):
        normalized += os.sep
    return normalized


@dataclass(frozen=True)
class FilterSet:
    """Exclusion rules for one edition/mode.

    Attributes:
        excluded: Normalized path substrings; a file containing any of them is skipped
        allowed_extensions: File extensions (without dot) that are enumerated at all
    """
    excluded: frozenset[str]
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS

    def __contains__(self, path: str) -> bool:
        """Exact membership of a relative path in the ignore list."""
        return path in self.excluded

    def excludes(self, path: str) -> bool:
        """Whether any excluded substring occurs in the path."""
        return any(entry in path for entry in self.excluded)

    def allows_extension(self, path: str) -> bool:
        return any(path.endswith(f'.{extension}') for extension in self.allowed_extensions)


@dataclass(frozen=True)
class FilterConfig:
    """Immutable ignore-list configuration shared by all edition computations.

    Attributes:
        allowed_extensions: Extensions enumerated by the tree walker
        modded: Paths of modded content, ignored unless modded checking is requested on java
        editions: Per-edition ignore lists
    """
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    modded: tuple[str, ...] = ()
    editions: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    def for_edition(self, edition: str, check_modded: bool) -> FilterSet:
        """Build the filter set for an edition.

        Modded content is only inspectable for java, so the modded ignore list is added
        for every other edition and whenever modded checking is off.
        """
        entries = list(self.editions.get(edition, ()))
        if not (check_modded and edition == MODDED_EDITION):
            entries.extend(self.modded)

        return FilterSet(
            frozenset(normalize_entry(entry) for entry in entries if entry),
            self.allowed_extensions)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'FilterConfig':
        """Build from a mapping laid out like ignored_textures.json.

        Example:
            {"allowed_extensions": ["png"], "modded": ["/assets/forge"], "java": ["/pack.png"]}
        """
        editions = {
            key: tuple(value)
            for key, value in data.items()
            if key not in _RESERVED_KEYS
        }
        return cls(
            allowed_extensions=tuple(data.get('allowed_extensions', DEFAULT_ALLOWED_EXTENSIONS)),
            modded=tuple(data.get('modded', ())),
            editions=MappingProxyType(editions))

    @classmethod
    def from_settings(cls, settings: Settings) -> 'FilterConfig':
        """Build from settings, merging an optional JSON ignore file with inline lists.

        Inline lists under filters.ignored extend the ignore file's lists, and
        filters.allowed_extensions replaces the file's extensions when present.
        """
        data: dict[str, Any] = {}

        ignore_file = settings.get(SETTING_IGNORE_FILE)
        if ignore_file is not None:
            ignore_path = Path(ignore_file)
            if not ignore_path.is_absolute() and settings.path is not None:
                ignore_path = settings.path.parent / ignore_path
            with open(ignore_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"{ignore_path} must hold a JSON object, not {type(data).__name__}")

        for key, entries in settings.get(SETTING_IGNORED, {}).items():
            data[key] = list(data.get(key, [])) + list(entries)

        extensions = settings.get(SETTING_ALLOWED_EXTENSIONS)
        if extensions is not None:
            data['allowed_extensions'] = extensions

        return cls.from_mapping(data)

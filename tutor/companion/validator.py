"""Structural checks for content and events payloads."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    errors: tuple[str, ...]


def _result(errors: Sequence[str]) -> ValidationResult:
    return ValidationResult(ok=not errors, errors=tuple(errors))


def validate_content(raw: Any) -> ValidationResult:
    """Check a content payload and report every violation found.

    Pages missing ``type``/``title`` are defaulted in place (``"info"``/``""``),
    so a payload that passes is also normalized.
    """
    errors: list[str] = []
    if not isinstance(raw, dict):
        # Nothing below can be checked without an object.
        return _result(["Content is not an object."])

    meta = raw.get("meta")
    home_page_id = raw.get("homePageId")
    pages = raw.get("pages")

    if not isinstance(meta, dict):
        errors.append("Missing meta object.")
    if not isinstance(home_page_id, str) or not home_page_id:
        errors.append("Missing homePageId string.")
        home_page_id = None
    if not isinstance(pages, dict):
        errors.append("Missing pages object.")
        return _result(errors)

    if home_page_id and pages.get(home_page_id) is None:
        errors.append(f'homePageId "{home_page_id}" not found in pages.')

    for page_id, page in pages.items():
        if not isinstance(page, dict):
            errors.append(f'Page "{page_id}" is not an object.')
            continue
        if not page.get("type"):
            page["type"] = "info"
        if not page.get("title"):
            page["title"] = ""
        errors.extend(_tile_errors(page_id, page.get("tiles"), pages))

    return _result(errors)


def _tile_errors(page_id: str, tiles: Any, pages: dict[str, Any]) -> list[str]:
    if not tiles:
        return []
    if not isinstance(tiles, list):
        return [f'Page "{page_id}" tiles must be an array.']
    errors: list[str] = []
    for tile in tiles:
        entry = tile if isinstance(tile, dict) else {}
        label = entry.get("label")
        if not label:
            errors.append(f'Page "{page_id}" has a tile missing label.')
        target = entry.get("to")
        if target and (not isinstance(target, str) or pages.get(target) is None):
            errors.append(f'Tile "{label or ""}" on "{page_id}" points to missing page "{target}".')
    return errors


def validate_events(raw: Any) -> ValidationResult:
    """Check the outer shape of an events payload (entries are matched leniently)."""
    if not isinstance(raw, dict):
        return _result(["Events payload is not an object."])
    errors: list[str] = []
    if "meta" in raw and not isinstance(raw["meta"], dict):
        errors.append("meta must be an object.")
    for key in ("rules", "events"):
        if key in raw and not isinstance(raw[key], list):
            errors.append(f"{key} must be an array.")
    return _result(errors)

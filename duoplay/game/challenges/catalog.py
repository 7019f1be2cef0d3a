from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path

import structlog

from duoplay.core.config import get_settings
from duoplay.game.challenges.types import ChallengeTemplate, ChallengeType, Gender

logger = structlog.get_logger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).with_name("challenges.json")


class ChallengeCatalogError(ValueError):
    pass


def _parse_template(raw: object, *, position: int) -> ChallengeTemplate:
    if not isinstance(raw, dict):
        raise ChallengeCatalogError(f"template #{position} is not an object")
    try:
        text = str(raw["text"]).strip()
        level = int(raw["level"])
        template = ChallengeTemplate(
            text=text,
            type=ChallengeType(raw["type"]),
            theme=str(raw.get("theme") or ""),
            level=level,
            gender=Gender(raw["gender"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ChallengeCatalogError(f"template #{position} is invalid: {exc}") from exc
    if not template.text:
        raise ChallengeCatalogError(f"template #{position} has empty text")
    if template.level not in (1, 2, 3, 4):
        raise ChallengeCatalogError(f"template #{position} has level {template.level}")
    return template


class ChallengeCatalog:
    """Read-only table of challenge templates indexed by (level, gender)."""

    def __init__(self, templates: Iterable[ChallengeTemplate], *, source: str = "memory") -> None:
        self._source = source
        self._by_key: dict[tuple[int, Gender], tuple[ChallengeTemplate, ...]] = {}
        self._load(templates)

    def _load(self, templates: Iterable[ChallengeTemplate]) -> None:
        grouped: dict[tuple[int, Gender], list[ChallengeTemplate]] = {}
        for template in templates:
            grouped.setdefault((template.level, template.gender), []).append(template)
        self._by_key = {key: tuple(items) for key, items in grouped.items()}

    @classmethod
    def from_templates(cls, templates: Iterable[ChallengeTemplate]) -> ChallengeCatalog:
        return cls(templates)

    @classmethod
    def from_file(cls, path: str | Path) -> ChallengeCatalog:
        catalog_path = Path(path)
        payload = json.loads(catalog_path.read_text(encoding="utf-8"))
        raw_templates = payload.get("templates") if isinstance(payload, dict) else None
        if not isinstance(raw_templates, list):
            raise ChallengeCatalogError(f"{catalog_path} has no templates list")
        templates = [
            _parse_template(raw, position=position) for position, raw in enumerate(raw_templates)
        ]
        catalog = cls(templates, source=str(catalog_path))
        logger.info(
            "challenge_catalog_loaded",
            source=str(catalog_path),
            templates_total=len(templates),
        )
        return catalog

    @property
    def source(self) -> str:
        return self._source

    @property
    def is_empty(self) -> bool:
        return not self._by_key

    def get_templates(self, level: int, gender: Gender | str) -> list[ChallengeTemplate]:
        return list(self._by_key.get((int(level), Gender(gender)), ()))

    def stats(self) -> dict[str, object]:
        by_level: Counter[int] = Counter()
        by_gender: Counter[str] = Counter()
        for (level, gender), items in self._by_key.items():
            by_level[level] += len(items)
            by_gender[gender.value] += len(items)
        return {
            "total": sum(by_level.values()),
            "by_level": {level: by_level.get(level, 0) for level in (1, 2, 3, 4)},
            "by_gender": {gender.value: by_gender.get(gender.value, 0) for gender in Gender},
        }

    def clear(self) -> None:
        self._by_key = {}


@lru_cache(maxsize=1)
def get_default_catalog() -> ChallengeCatalog:
    configured_path = get_settings().challenge_catalog_path
    return ChallengeCatalog.from_file(configured_path or DEFAULT_CATALOG_PATH)

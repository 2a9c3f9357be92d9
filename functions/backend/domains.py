"""
Content domains served by the sync stores.

Every domain is the same generic store parameterised by a ``ContentDomain``:
where its items live in the remote document, which field identifies an item,
which secondary structures travel alongside the items, and how statistics,
search and write validation differ per domain.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from backend.exceptions import ContentValidationError, ParseError
from backend.localization import localized_variants

Item = Dict[str, Any]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def id_key(value: Any) -> Optional[str]:
    """String key for a usable id (number or non-empty string), else ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, str) and value != "":
        return value
    return None


@dataclass(frozen=True)
class ContentDomain:
    name: str
    label: str
    items_key: str
    file_id_setting: str
    id_field: str = "id"
    category_field: Optional[str] = "category"
    average_field: Optional[str] = None
    search_fields: tuple = ("name", "description", "category")
    localized_fields: tuple = ("name", "description")
    nested_localized: Mapping[str, tuple] = field(default_factory=dict)
    # Secondary structures copied from the document, with their empty values.
    extras: Mapping[str, Callable[[], Any]] = field(default_factory=dict)
    select_default: Optional[Callable[[Sequence[Item], Mapping[str, Any]], Optional[Item]]] = None
    normalize_item: Optional[Callable[[Item], Item]] = None
    extra_stats: Optional[Callable[[Sequence[Item], Mapping[str, Any]], dict]] = None
    validate_items: Optional[Callable[[Sequence[Item]], None]] = None
    recommend: Optional[Callable[[Sequence[Item], str, int], list]] = None

    def empty_extras(self) -> dict:
        return {key: factory() for key, factory in self.extras.items()}

    def parse_items(self, document: Any) -> list:
        """Extract the raw item list from a remote document."""
        if not isinstance(document, dict):
            raise ParseError(f"{self.label} document must be a JSON object")
        raw = document.get(self.items_key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ParseError(f"'{self.items_key}' must be a list")
        items = []
        for position, item in enumerate(raw):
            if not isinstance(item, dict):
                raise ParseError(
                    f"{self.label} item at position {position} is not an object"
                )
            items.append(self.normalize_item(item) if self.normalize_item else dict(item))
        return items

    def parse_extras(self, document: dict) -> dict:
        extras = self.empty_extras()
        for key in self.extras:
            value = document.get(key)
            if value is not None:
                extras[key] = value
        return extras

    def validate(self, content: Any) -> None:
        """Validate an administrator-submitted document before it is pushed."""
        if not isinstance(content, dict):
            raise ContentValidationError(
                f"Invalid data: {self.label} document must be an object"
            )
        items = content.get(self.items_key)
        if not isinstance(items, list):
            raise ContentValidationError(
                f"Invalid data: {self.items_key} must be an array"
            )
        if any(not isinstance(item, dict) for item in items):
            raise ContentValidationError(
                f"Invalid data: each entry in {self.items_key} must be an object"
            )
        if self.validate_items:
            self.validate_items(items)


def _normalize_program(item: Item) -> Item:
    program = {"id": item.get("id"), "name": item.get("name") or ""}
    if "isDefault" in item:
        program["isDefault"] = item["isDefault"]
    return program


def _validate_programs(programs: Sequence[Item]) -> None:
    ids = set()
    for program in programs:
        name = program.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ContentValidationError(
                "Invalid data: each program must have a non-empty name"
            )
        program_id = program.get("id")
        if program_id is not None and (
            isinstance(program_id, bool) or not isinstance(program_id, (int, float, str))
        ):
            raise ContentValidationError(
                "Invalid data: each program id must be a number or a string"
            )
        key = str(program_id)
        if key in ids:
            raise ContentValidationError(
                f"Duplicate program id: {key}. Each program must have a unique id. "
                "Please change the duplicate id."
            )
        ids.add(key)


def default_program(
    programs: Sequence[Item], extras: Optional[Mapping[str, Any]] = None
) -> Optional[Item]:
    """The program flagged ``isDefault``, else the first program."""
    if not programs:
        return None
    for program in programs:
        if program.get("isDefault") is True:
            return program
    return programs[0]


def default_mood_type(
    moods: Sequence[Item], extras: Mapping[str, Any]
) -> Optional[Item]:
    wanted = id_key(extras.get("defaultMood"))
    if wanted is None:
        return None
    for mood in moods:
        if id_key(mood.get("id")) == wanted:
            return mood
    return None


def _category_stats(items: Sequence[Item], extras: Mapping[str, Any]) -> dict:
    return {"totalCategories": len(extras.get("categories") or {})}


def _social_network_stats(items: Sequence[Item], extras: Mapping[str, Any]) -> dict:
    return {"categories": list((extras.get("categories") or {}).keys())}


def _onboarding_stats(steps: Sequence[Item], extras: Mapping[str, Any]) -> dict:
    total_answers = sum(len(step.get("answers") or []) for step in steps)
    required = sum(1 for step in steps if step.get("required"))
    return {
        "totalAnswers": total_answers,
        "averageAnswersPerStep": (
            math.floor(total_answers / len(steps) + 0.5) if steps else 0
        ),
        "requiredSteps": required,
        "optionalSteps": len(steps) - required,
    }


def required_steps(steps: Sequence[Item]) -> list:
    return [step for step in steps if step.get("required")]


def optional_steps(steps: Sequence[Item]) -> list:
    return [step for step in steps if not step.get("required")]


def _mentions(value: Any, text: str) -> bool:
    """Whether any translation of a localized value occurs in ``text``."""
    return any(
        variant.strip() and variant.lower() in text
        for variant in localized_variants(value)
    )


def _id_mentioned(value: Any, text: str) -> bool:
    key = id_key(value)
    return key is not None and key.lower() in text


def _top_scored(scored: list[tuple[Item, float]], limit: int) -> list:
    ranked = [pair for pair in scored if pair[1] > 0]
    # sorted() is stable, so ties keep document order.
    ranked = sorted(ranked, key=lambda pair: pair[1], reverse=True)
    return [item for item, _ in ranked[:limit]]


def recommend_mood_types(moods: Sequence[Item], text: str, limit: int = 3) -> list:
    desc = text.lower()
    scored = []
    for mood in moods:
        score = 0.0
        if _mentions(mood.get("name"), desc):
            score += 2
        if _mentions(mood.get("description"), desc):
            score += 1
        if _mentions(mood.get("category"), desc):
            score += 0.5
        scored.append((mood, score))
    return _top_scored(scored, limit)


def high_rated(moods: Sequence[Item], threshold: float = 7) -> list:
    return [m for m in moods if _is_number(m.get("score")) and m["score"] >= threshold]


def low_rated(moods: Sequence[Item], threshold: float = 4) -> list:
    return [m for m in moods if _is_number(m.get("score")) and m["score"] <= threshold]


def _keywords(activity: Item) -> list[str]:
    return [k.lower() for k in activity.get("keywords") or [] if isinstance(k, str) and k]


def recommend_activity_types(
    activities: Sequence[Item], text: str, limit: int = 3
) -> list:
    name = text.lower()
    scored = []
    for activity in activities:
        score = 0.0
        for keyword in _keywords(activity):
            if keyword in name:
                score += 2
        if _id_mentioned(activity.get("id"), name):
            score += 1
        scored.append((activity, score))
    return _top_scored(scored, limit)


def determine_activity_type(
    activities: Sequence[Item], activity_name: str, content: Any = None
) -> str:
    """Best-matching activity type id for an activity, ``general`` when nothing matches."""
    name = activity_name.lower()
    content_text = (
        json.dumps(content, ensure_ascii=False).lower()
        if isinstance(content, (dict, list))
        else ""
    )
    best_id, best_score = None, 0.0
    for activity in activities:
        activity_id = id_key(activity.get("id"))
        if activity_id is None:
            continue
        score = 0.0
        keywords = _keywords(activity)
        for keyword in keywords:
            if keyword in name:
                score += 2
        if activity_id.lower() in name:
            score += 1
        if _mentions(activity.get("category"), name):
            score += 0.5
        if content_text:
            score += sum(1 for keyword in keywords if keyword in content_text)
        if best_id is None or score > best_score:
            best_id, best_score = activity_id, score
    if best_id is not None and best_score > 0:
        return best_id
    return "general"


PROGRAMS = ContentDomain(
    name="programs",
    label="programs",
    items_key="programs",
    file_id_setting="PROGRAMS_FILE_ID",
    category_field=None,
    search_fields=("name",),
    localized_fields=("name",),
    normalize_item=_normalize_program,
    select_default=default_program,
    validate_items=_validate_programs,
)

MOOD_TYPES = ContentDomain(
    name="mood_types",
    label="mood types",
    items_key="moodTypes",
    file_id_setting="MOOD_TYPES_FILE_ID",
    average_field="score",
    extras={"categories": dict, "defaultMood": lambda: None},
    select_default=default_mood_type,
    extra_stats=_category_stats,
    recommend=recommend_mood_types,
)

ONBOARDING_QUESTIONS = ContentDomain(
    name="onboarding_questions",
    label="onboarding questions",
    items_key="onboardingSteps",
    file_id_setting="ONBOARDING_QUESTIONS_FILE_ID",
    id_field="stepName",
    category_field=None,
    search_fields=("stepName", "stepQuestion"),
    localized_fields=("stepQuestion",),
    nested_localized={"answers": ("text", "subtitle")},
    extra_stats=_onboarding_stats,
)

SOCIAL_NETWORKS = ContentDomain(
    name="social_networks",
    label="social networks",
    items_key="socialNetworks",
    file_id_setting="SOCIAL_NETWORKS_FILE_ID",
    extras={"categories": dict},
    extra_stats=_social_network_stats,
)

ACTIVITY_TYPES = ContentDomain(
    name="activity_types",
    label="activity types",
    items_key="activityTypes",
    file_id_setting="ACTIVITY_TYPES_FILE_ID",
    search_fields=("name", "description", "category", "keywords"),
    extras={"categories": dict},
    extra_stats=_category_stats,
    recommend=recommend_activity_types,
)

DOMAINS: Dict[str, ContentDomain] = {
    domain.name: domain
    for domain in (
        PROGRAMS,
        MOOD_TYPES,
        ONBOARDING_QUESTIONS,
        SOCIAL_NETWORKS,
        ACTIVITY_TYPES,
    )
}

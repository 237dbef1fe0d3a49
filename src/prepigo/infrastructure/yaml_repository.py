"""
YAML Collection Repository — Infrastructure adapter for a collection file on disk.

Implements CollectionRepository over a single YAML (or JSON) document:

    settings: {...}                # global SrsSettings, snake_case or camelCase
    decks: [container, ...]        # flashcard decks
    banks: [container, ...]        # question banks
    exams: [exam, ...]
    introduced_today: {date: 2026-01-31, ids: [...]}
    reviews: [log, ...]            # append-only review log
"""

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from prepigo.domain.errors import ConfigError
from prepigo.domain.models import (
    Container,
    ContainerKind,
    Exam,
    FsrsState,
    Item,
    ReviewLog,
    Sm2Phase,
    Sm2State,
    SrsSlots,
    State,
)
from prepigo.domain.ports import CollectionRepository
from prepigo.domain.settings import SrsSettings, parse_settings

logger = logging.getLogger(__name__)

_FOREST_KEYS: dict[str, str] = {"deck": "decks", "bank": "banks"}


class YamlCollectionRepository(CollectionRepository):
    """
    Reads and writes the study collection as a YAML file.

    Malformed items, containers and exams are logged and skipped so one bad
    entry does not hide the rest of the collection. Malformed settings are
    fatal (ConfigError).
    """

    def __init__(self, path: Path):
        self.path = path

    # ----- reading -----

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            raise ConfigError(f"Collection file not found: {self.path}")
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Collection file is not valid YAML: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Collection root must be a mapping, got {type(data).__name__}")
        return data

    def load_forest(self, kind: ContainerKind) -> list[Container]:
        raw = self._read().get(_FOREST_KEYS[kind]) or []
        forest = []
        for entry in raw:
            container = self._parse_container(entry, kind)
            if container is not None:
                forest.append(container)
        return forest

    def load_settings(self) -> SrsSettings:
        return parse_settings(self._read().get("settings"))

    def load_exams(self) -> list[Exam]:
        exams = []
        for entry in self._read().get("exams") or []:
            try:
                exams.append(
                    Exam(
                        id=str(entry["id"]),
                        name=str(entry.get("name", entry["id"])),
                        date=_as_date(entry["date"]),
                        container_ids=tuple(str(c) for c in entry.get("container_ids") or ()),
                        tags=frozenset(entry.get("tags") or ()),
                        tag_filter="any" if entry.get("tag_filter") == "any" else "all",
                        difficulty_min=entry.get("difficulty_min"),
                        difficulty_max=entry.get("difficulty_max"),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed exam {entry!r}: {e}")
        return exams

    def load_introduced_today(self, today: date) -> frozenset[str]:
        snapshot = self._read().get("introduced_today") or {}
        try:
            stored = _as_date(snapshot.get("date"))
        except (TypeError, ValueError):
            return frozenset()
        if stored != today:
            return frozenset()
        return frozenset(str(i) for i in snapshot.get("ids") or ())

    def _parse_container(self, entry: Any, kind: ContainerKind) -> Container | None:
        try:
            custom = entry.get("settings")
            children = tuple(
                c for c in (self._parse_container(e, kind) for e in entry.get("children") or ()) if c
            )
            items = tuple(i for i in (_parse_item(e, kind) for e in entry.get("items") or ()) if i)
            return Container(
                id=str(entry["id"]),
                name=str(entry.get("name", entry["id"])),
                kind=kind,
                items=items,
                children=children,
                has_custom_settings=bool(entry.get("has_custom_settings", False)),
                settings=parse_settings(custom) if custom is not None else None,
            )
        except (AttributeError, KeyError, TypeError) as e:
            logger.warning(f"Skipping malformed {kind}: {e}")
            return None

    # ----- writing -----

    def save_review(self, item: Item, log: ReviewLog, today: date) -> None:
        data = self._read()

        raw_item = None
        for key in _FOREST_KEYS.values():
            raw_item = _find_raw_item(data.get(key) or [], item.id)
            if raw_item is not None:
                break
        if raw_item is None:
            raise ConfigError(f"Item not found in collection: {item.id}")

        raw_item["srs"] = _dump_slots(item.srs)
        data.setdefault("reviews", []).append(_dump_log(log))

        if log.state == "new":
            snapshot = data.get("introduced_today") or {}
            ids = list(snapshot.get("ids") or ()) if _same_day(snapshot.get("date"), today) else []
            if item.id not in ids:
                ids.append(item.id)
            data["introduced_today"] = {"date": today.isoformat(), "ids": ids}

        self.path.write_text(
            yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False),
            encoding="utf-8",
        )
        logger.debug(f"Saved review of {item.id} ({log.rating.name})")


# ---------- parsing helpers ----------


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _same_day(value: Any, today: date) -> bool:
    try:
        return _as_date(value) == today
    except (TypeError, ValueError):
        return False


def _fsrs_state_value(value: Any) -> State:
    if isinstance(value, str):
        return State[value.upper()]
    return State(int(value))


def _parse_fsrs(raw: dict[str, Any]) -> FsrsState:
    last = raw.get("last_review")
    return FsrsState(
        due=_as_datetime(raw["due"]),
        stability=float(raw.get("stability", 0.0)),
        difficulty=float(raw.get("difficulty", 0.0)),
        elapsed_days=float(raw.get("elapsed_days", 0.0)),
        scheduled_days=float(raw.get("scheduled_days", 0.0)),
        reps=int(raw.get("reps", 0)),
        lapses=int(raw.get("lapses", 0)),
        state=_fsrs_state_value(raw.get("state", 0)),
        last_review=_as_datetime(last) if last else None,
        learning_steps=int(raw.get("learning_steps", 0)),
    )


def _parse_sm2(raw: dict[str, Any]) -> Sm2State:
    last = raw.get("last_review")
    return Sm2State(
        due=_as_datetime(raw["due"]),
        easiness_factor=float(raw.get("easiness_factor", 2.5)),
        interval=int(raw.get("interval", 1)),
        repetitions=int(raw.get("repetitions", 0)),
        lapses=int(raw.get("lapses", 0)),
        state=Sm2Phase(raw.get("state") or "new"),
        learning_step=int(raw.get("learning_step", 0)),
        last_review=_as_datetime(last) if last else None,
    )


def _parse_item(entry: Any, container_kind: ContainerKind) -> Item | None:
    try:
        srs = entry.get("srs") or {}
        order = entry.get("new_card_order")
        return Item(
            id=str(entry["id"]),
            kind=entry.get("kind") or ("mcq" if container_kind == "bank" else "flashcard"),
            tags=frozenset(entry.get("tags") or ()),
            is_suspended=bool(entry.get("is_suspended", False)),
            new_card_order=int(order) if order is not None else None,
            note_id=entry.get("note_id"),
            card_type=entry.get("card_type"),
            srs=SrsSlots(
                fsrs=_parse_fsrs(srs["fsrs"]) if srs.get("fsrs") else None,
                fsrs6=_parse_fsrs(srs["fsrs6"]) if srs.get("fsrs6") else None,
                sm2=_parse_sm2(srs["sm2"]) if srs.get("sm2") else None,
            ),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping malformed item {entry!r}: {e}")
        return None


def _find_raw_item(containers: list[Any], item_id: str) -> dict[str, Any] | None:
    for container in containers:
        if not isinstance(container, dict):
            continue
        for raw in container.get("items") or ():
            if isinstance(raw, dict) and str(raw.get("id")) == item_id:
                return raw
        found = _find_raw_item(container.get("children") or [], item_id)
        if found is not None:
            return found
    return None


# ---------- dumping helpers ----------


def _dump_fsrs(state: FsrsState) -> dict[str, Any]:
    return {
        "due": state.due.isoformat(),
        "stability": state.stability,
        "difficulty": state.difficulty,
        "elapsed_days": state.elapsed_days,
        "scheduled_days": state.scheduled_days,
        "reps": state.reps,
        "lapses": state.lapses,
        "state": state.state.name.lower(),
        "last_review": state.last_review.isoformat() if state.last_review else None,
        "learning_steps": state.learning_steps,
    }


def _dump_sm2(state: Sm2State) -> dict[str, Any]:
    return {
        "due": state.due.isoformat(),
        "easiness_factor": state.easiness_factor,
        "interval": state.interval,
        "repetitions": state.repetitions,
        "lapses": state.lapses,
        "state": Sm2Phase(state.state).value,
        "learning_step": state.learning_step,
        "last_review": state.last_review.isoformat() if state.last_review else None,
    }


def _dump_slots(slots: SrsSlots) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if slots.fsrs is not None:
        out["fsrs"] = _dump_fsrs(slots.fsrs)
    if slots.fsrs6 is not None:
        out["fsrs6"] = _dump_fsrs(slots.fsrs6)
    if slots.sm2 is not None:
        out["sm2"] = _dump_sm2(slots.sm2)
    return out


def _dump_log(log: ReviewLog) -> dict[str, Any]:
    return {
        "item_id": log.item_id,
        "rating": int(log.rating),
        "scheduler": log.scheduler,
        "state": log.state,
        "due": log.due.isoformat(),
        "stability": log.stability,
        "difficulty": log.difficulty,
        "elapsed_days": log.elapsed_days,
        "last_elapsed_days": log.last_elapsed_days,
        "scheduled_days": log.scheduled_days,
        "review": log.review.isoformat(),
        "duration_ms": log.duration_ms,
    }

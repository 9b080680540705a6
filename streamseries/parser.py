from __future__ import annotations

import json
import logging
import math
import re
import time
import unicodedata
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Dict, List

from streamseries.errors import DataFormatError
from streamseries.models import Catalog, Episode, EpisodeRecord, Season, Series, SeriesSummary

logger = logging.getLogger(__name__)

DEFAULT_SERIES = "Unnamed"
DEFAULT_SEASON = "1"
DEFAULT_EPISODE = 1
POSTER_KEYS = ("posterUrl", "poster", "logo serie")


def _absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def clean_text(value: Any) -> str:
    return re.sub(r"\s+", " ", str(value)).strip()


def parse_int(value: Any, default: int = DEFAULT_EPISODE) -> int:
    if _absent(value):
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    text = clean_text(value)
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return default


def season_label(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_record(raw: Mapping[str, Any]) -> EpisodeRecord:
    """Fill in defaults for a raw record coming from the catalog source."""
    series = DEFAULT_SERIES if _absent(raw.get("series")) else str(raw["series"])
    season = DEFAULT_SEASON if _absent(raw.get("season")) else season_label(raw["season"])
    number = parse_int(raw.get("ep"))
    title = "" if _absent(raw.get("title")) else str(raw["title"]).strip()
    url = "" if _absent(raw.get("url")) else str(raw["url"]).strip()
    poster = next((str(raw[k]).strip() for k in POSTER_KEYS if not _absent(raw.get(k))), "")
    return EpisodeRecord(series=series, season=season, ep=number, title=title, url=url, poster_url=poster)


def season_sort_key(label: str):
    # numeric labels first, in numeric order, then the rest as text
    if re.fullmatch(r"\d+(?:\.\d+)?", label):
        return (0, float(label), label)
    return (1, 0.0, label.casefold())


def name_sort_key(name: str):
    stripped = "".join(c for c in unicodedata.normalize("NFKD", name) if not unicodedata.combining(c))
    return (stripped.casefold(), name.casefold(), name)


def build_catalog(records: Any) -> Catalog:
    if isinstance(records, (str, bytes, bytearray, Mapping)) or not isinstance(records, Sequence):
        raise DataFormatError(f"catalog source must be a list of records, got {type(records).__name__}")

    posters: Dict[str, str] = {}
    grouped: Dict[str, Dict[str, List[Episode]]] = {}
    skipped = 0

    for position, raw in enumerate(records):
        if not isinstance(raw, Mapping):
            skipped += 1
            logger.warning("Skipping record #%d: expected an object, got %s", position, type(raw).__name__)
            continue
        record = coerce_record(raw)
        seasons = grouped.setdefault(record.series, {})
        if not posters.get(record.series):
            posters[record.series] = record.poster_url
        seasons.setdefault(record.season, []).append(Episode(number=record.ep, title=record.title, url=record.url))

    series: Dict[str, Series] = {}
    total_episodes = 0
    for name, seasons in grouped.items():
        ordered = {
            label: Season(label=label, episodes=tuple(sorted(seasons[label], key=lambda ep: ep.number)))
            for label in sorted(seasons, key=season_sort_key)
        }
        count = sum(len(season.episodes) for season in ordered.values())
        series[name] = Series(name=name, poster_url=posters.get(name, ""), seasons=ordered, episode_count=count)
        total_episodes += count

    summaries = tuple(
        sorted(
            (
                SeriesSummary(
                    name=s.name,
                    poster_url=s.poster_url,
                    season_count=len(s.seasons),
                    episode_count=s.episode_count,
                )
                for s in series.values()
            ),
            key=lambda summary: name_sort_key(summary.name),
        )
    )

    if skipped:
        logger.warning("%d malformed record(s) skipped", skipped)
    logger.info("Indexed %d episodes into %d series", total_episodes, len(series))
    return Catalog(
        series=series,
        summaries=summaries,
        episode_count=total_episodes,
        loaded=True,
        built_at=time.time(),
    )


def load_records(path: Path) -> list:
    if not path.is_file():
        raise DataFormatError(f"catalog source not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise DataFormatError(f"cannot read {path}: {exc}") from exc
    logger.info("Read %d bytes from %s", len(raw), path)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DataFormatError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise DataFormatError(f"{path} must contain a JSON array, got {type(data).__name__}")
    return data


def describe_source(path: Path) -> dict:
    if not path.is_file():
        return {"error": "File not found", "path": str(path)}
    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, UnicodeDecodeError) as exc:
        return {"error": "Unreadable file", "path": str(path), "message": str(exc)}
    except json.JSONDecodeError as exc:
        return {"error": "Invalid JSON", "message": str(exc)}
    return {
        "path": str(path),
        "fileExists": True,
        "length": len(data) if isinstance(data, list) else None,
        "sample": data[:2] if isinstance(data, list) else None,
    }

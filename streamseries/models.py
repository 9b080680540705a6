from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


@dataclass(slots=True)
class EpisodeRecord:
    series: str = "Unnamed"
    season: str = "1"
    ep: int = 1
    title: str = ""
    url: str = ""
    poster_url: str = ""

    def __post_init__(self):
        if not self.title:
            self.title = f"Episode {self.ep}"


@dataclass(frozen=True, slots=True)
class Episode:
    number: int
    title: str
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"number": self.number, "title": self.title, "url": self.url}


@dataclass(frozen=True, slots=True)
class Season:
    label: str
    episodes: Tuple[Episode, ...] = ()

    def to_list(self) -> List[Dict[str, Any]]:
        return [ep.to_dict() for ep in self.episodes]


@dataclass(frozen=True, slots=True)
class Series:
    name: str
    poster_url: str = ""
    seasons: Mapping[str, Season] = field(default_factory=dict)
    episode_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "posterUrl": self.poster_url,
            "seasons": {label: season.to_list() for label, season in self.seasons.items()},
            "episodeCount": self.episode_count,
        }


@dataclass(frozen=True, slots=True)
class SeriesSummary:
    name: str
    poster_url: str
    season_count: int
    episode_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "posterUrl": self.poster_url,
            "seasonCount": self.season_count,
            "episodeCount": self.episode_count,
        }


@dataclass(frozen=True, slots=True)
class Catalog:
    series: Mapping[str, Series] = field(default_factory=dict)
    summaries: Tuple[SeriesSummary, ...] = ()
    episode_count: int = 0
    loaded: bool = False
    built_at: Optional[float] = None


@dataclass(slots=True)
class SeriesPage:
    total: int
    page: int
    has_more: bool
    data: List[SeriesSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "hasMore": self.has_more,
            "data": [item.to_dict() for item in self.data],
        }

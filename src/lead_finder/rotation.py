"""
Rotation planning for lead finder runs.

The daily rotation cycles geography and trigger by day of year, and industry
every two days, so consecutive scheduled runs cover different ground. The
random rotation is for ad-hoc manual runs.
"""

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from src.common.repositories.base import LeadFinderRepositoryInterface
from src.lead_finder.types import DEFAULT_EMAIL_TONES, DEFAULT_TRIGGER_ROTATION, RunConfig

# ===== DEFAULTS =====
# Used when the config store has no value for a key.

DEFAULT_GEO = {"name": "Houston", "aliases": ["Houston"]}
DEFAULT_TRIGGER = "career_move"
DEFAULT_DAILY_LEAD_TARGET = 20
DEFAULT_CANDIDATE_TARGET = 60
DEFAULT_RECENCY_DAYS = 7
DEFAULT_LEAD_COOLDOWN_DAYS = 90


@dataclass
class GeoEntry:
    name: str
    aliases: List[str]

    @classmethod
    def from_value(cls, value: Any) -> "GeoEntry":
        """Accept {"name", "aliases"} dicts or a bare name string."""
        if isinstance(value, str):
            return cls(name=value, aliases=[value])
        name = value["name"]
        return cls(name=name, aliases=list(value.get("aliases") or [name]))


def day_of_year(day: date) -> int:
    """1-based ordinal day of the calendar year (Jan 1 -> 1)."""
    return day.timetuple().tm_yday


class RotationPlanner:
    """
    Builds the RunConfig for a run from the repository's config store.

    Config keys: geo_list, trigger_list, industry_list, email_tones,
    daily_lead_target, candidate_target, recency_days, lead_cooldown_days.
    """

    def __init__(self, repository: LeadFinderRepositoryInterface, rng: Optional[random.Random] = None):
        self.repository = repository
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)

    def _load(self) -> Dict[str, Any]:
        return self.repository.load_config() or {}

    def plan_daily(self, today: Optional[date] = None) -> RunConfig:
        """
        Deterministic plan for a calendar day.

        geo = geo_list[d % len], trigger = trigger_list[d % len],
        industry = industry_list[(d // 2) % len] when configured.
        """
        config = self._load()
        d = day_of_year(today or date.today())

        geos = self._geo_list(config)
        triggers = self._trigger_list(config)
        industries = self._industry_list(config)

        geo = geos[d % len(geos)] if geos else GeoEntry.from_value(DEFAULT_GEO)
        trigger = triggers[d % len(triggers)] if triggers else DEFAULT_TRIGGER
        industry = industries[(d // 2) % len(industries)] if industries else None

        run_config = self._build(config, geo, trigger, industry)
        self.logger.info(
            f"Daily rotation (day {d}): geo={run_config.geo_name}, "
            f"trigger={run_config.trigger_focus}, industry={run_config.industry_focus}"
        )
        return run_config

    def plan_random(self, ignore_cooldown: bool = True) -> RunConfig:
        """
        Uniformly sampled plan for a manual run.

        Args:
            ignore_cooldown: When True the returned config has
                lead_cooldown_days = 0, so recently selected leads are
                eligible again. Pass False to keep the configured cooldown.
        """
        config = self._load()

        geos = self._geo_list(config)
        triggers = self._trigger_list(config)
        industries = self._industry_list(config)

        geo = self.rng.choice(geos) if geos else GeoEntry.from_value(DEFAULT_GEO)
        trigger = self.rng.choice(triggers) if triggers else DEFAULT_TRIGGER
        industry = self.rng.choice(industries) if industries else None

        run_config = self._build(
            config, geo, trigger, industry,
            cooldown_override=0 if ignore_cooldown else None,
        )
        self.logger.info(
            f"Random rotation: geo={run_config.geo_name}, trigger={run_config.trigger_focus}, "
            f"industry={run_config.industry_focus}, cooldown={run_config.lead_cooldown_days}d"
        )
        return run_config

    # ===== HELPERS =====

    @staticmethod
    def _geo_list(config: Dict[str, Any]) -> List[GeoEntry]:
        return [GeoEntry.from_value(v) for v in config.get("geo_list") or []]

    @staticmethod
    def _trigger_list(config: Dict[str, Any]) -> List[str]:
        value = config.get("trigger_list")
        if value is None:
            return list(DEFAULT_TRIGGER_ROTATION)
        return list(value)

    @staticmethod
    def _industry_list(config: Dict[str, Any]) -> List[str]:
        return list(config.get("industry_list") or [])

    @staticmethod
    def _int_setting(config: Dict[str, Any], key: str, default: int) -> int:
        value = config.get(key)
        return default if value is None else int(value)

    def _build(
        self,
        config: Dict[str, Any],
        geo: GeoEntry,
        trigger: str,
        industry: Optional[str],
        cooldown_override: Optional[int] = None,
    ) -> RunConfig:
        cooldown = self._int_setting(config, "lead_cooldown_days", DEFAULT_LEAD_COOLDOWN_DAYS)
        return RunConfig(
            geo_name=geo.name,
            geo_aliases=tuple(geo.aliases),
            trigger_focus=trigger,
            industry_focus=industry,
            daily_lead_target=self._int_setting(config, "daily_lead_target", DEFAULT_DAILY_LEAD_TARGET),
            candidate_target=self._int_setting(config, "candidate_target", DEFAULT_CANDIDATE_TARGET),
            recency_days=self._int_setting(config, "recency_days", DEFAULT_RECENCY_DAYS),
            lead_cooldown_days=cooldown if cooldown_override is None else cooldown_override,
            email_tones=tuple(config.get("email_tones") or DEFAULT_EMAIL_TONES),
        )

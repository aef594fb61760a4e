"""Persisted lead settings and scheduler state.

Settings resolve in three layers: environment defaults from ``leadflow.config``,
an optional YAML seed file, and finally the ``lead_settings`` row edited
through the API. Each layer only overrides the keys it sets.
"""

from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session, sessionmaker

from leadflow.clock import utcnow
from leadflow.config import Settings, settings as app_settings
from leadflow.models.app_state import AppState, LEAD_SETTINGS_KEY, AUTOMATION_STATE_KEY
from leadflow.services.assignment import Agent
from leadflow.services.scoring import ScoreWeights
from leadflow.services.sla import SLATargets

logger = structlog.get_logger()


class SLATargetSettings(BaseModel):
    first_contact_hours: float = Field(default=2, gt=0)
    qualification_hours: float = Field(default=24, gt=0)
    conversion_hours: float = Field(default=48, gt=0)


class ScoreWeightSettings(BaseModel):
    contact_quality: int = Field(default=20, ge=0, le=100)
    intent_clarity: int = Field(default=20, ge=0, le=100)
    budget_realism: int = Field(default=20, ge=0, le=100)
    timeline_urgency: int = Field(default=20, ge=0, le=100)
    source_quality: int = Field(default=20, ge=0, le=100)

    @model_validator(mode="after")
    def total_within_100(self):
        total = (
            self.contact_quality + self.intent_clarity + self.budget_realism
            + self.timeline_urgency + self.source_quality
        )
        if total > 100:
            raise ValueError(f"scoring weights sum to {total}, maximum is 100")
        return self


class AgentSettings(BaseModel):
    id: str
    name: str
    specialties: list[str] = []
    preferred_sources: list[str] = []


class LeadSettings(BaseModel):
    sla_targets: SLATargetSettings = Field(default_factory=SLATargetSettings)
    score_weights: ScoreWeightSettings = Field(default_factory=ScoreWeightSettings)
    auto_archive_after_days: int = Field(default=30, ge=1)
    auto_assign_enabled: bool = False
    default_agent_id: str = ""
    default_agent_name: str = ""
    agents: list[AgentSettings] = []

    def roster(self) -> list[Agent]:
        return [
            Agent(a.id, a.name, tuple(a.specialties), tuple(a.preferred_sources))
            for a in self.agents
        ]

    def targets(self) -> SLATargets:
        return SLATargets(**self.sla_targets.model_dump())

    def weights(self) -> ScoreWeights:
        return ScoreWeights(**self.score_weights.model_dump())

    @classmethod
    def from_config(cls, config: Settings) -> "LeadSettings":
        return cls(
            sla_targets=SLATargetSettings(
                first_contact_hours=config.sla_first_contact_hours,
                qualification_hours=config.sla_qualification_hours,
                conversion_hours=config.sla_conversion_hours,
            ),
            score_weights=ScoreWeightSettings(
                contact_quality=config.score_weight_contact_quality,
                intent_clarity=config.score_weight_intent_clarity,
                budget_realism=config.score_weight_budget_realism,
                timeline_urgency=config.score_weight_timeline_urgency,
                source_quality=config.score_weight_source_quality,
            ),
            auto_archive_after_days=config.auto_archive_after_days,
            auto_assign_enabled=config.auto_assign_enabled,
            default_agent_id=config.default_agent_id,
            default_agent_name=config.default_agent_name,
        )


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings_file(path: str | Path) -> dict:
    """Read a YAML lead-settings seed. A missing or empty file yields {}."""
    path = Path(path)
    if not path.exists():
        logger.warning("lead_settings_file_missing", path=str(path))
        return {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data.get("lead_settings", data)


class LeadSettingsStore:
    """Reads and writes the ``lead_settings`` row on top of the defaults."""

    def __init__(self, session_factory: sessionmaker[Session], config: Settings | None = None):
        self.session_factory = session_factory
        self.config = config or app_settings
        self._defaults = LeadSettings.from_config(self.config).model_dump()
        if self.config.lead_settings_file:
            seed = load_settings_file(self.config.lead_settings_file)
            self._defaults = LeadSettings(**_deep_merge(self._defaults, seed)).model_dump()

    def get(self) -> LeadSettings:
        with self.session_factory() as session:
            row = session.get(AppState, LEAD_SETTINGS_KEY)
            stored = dict(row.value) if row and row.value else {}
        return LeadSettings(**_deep_merge(self._defaults, stored))

    def update(self, patch: dict) -> LeadSettings:
        """Validate and persist a partial update; returns the effective settings."""
        with self.session_factory() as session:
            row = session.get(AppState, LEAD_SETTINGS_KEY)
            stored = dict(row.value) if row and row.value else {}
            merged_stored = _deep_merge(stored, patch)
            effective = LeadSettings(**_deep_merge(self._defaults, merged_stored))
            if row is None:
                row = AppState(key=LEAD_SETTINGS_KEY, value=merged_stored)
                session.add(row)
            else:
                row.value = merged_stored
                row.updated_at = utcnow()
            session.commit()
        logger.info("lead_settings_updated", keys=sorted(patch.keys()))
        return effective


class AutomationStateStore:
    """Persists the scheduler's ``automation_state`` row."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def load(self) -> dict:
        with self.session_factory() as session:
            row = session.get(AppState, AUTOMATION_STATE_KEY)
            return dict(row.value) if row and row.value else {}

    def save(self, state: dict) -> None:
        with self.session_factory() as session:
            row = session.get(AppState, AUTOMATION_STATE_KEY)
            if row is None:
                session.add(AppState(key=AUTOMATION_STATE_KEY, value=dict(state)))
            else:
                row.value = dict(state)
                row.updated_at = utcnow()
            session.commit()

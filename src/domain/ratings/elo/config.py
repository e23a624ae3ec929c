"""Load Elo system definitions from TOML files."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import BaseSystemConfig, load_system_config, load_system_configs
from domain.ratings.elo.calculator import EloParameters
from domain.ratings.smart_score import SmartScoreParameters

ROOT_DIR = Path(__file__).resolve().parents[4]
DEFAULT_CONFIG_PATH = ROOT_DIR / "configs" / "elo" / "default.toml"


@dataclass(frozen=True)
class EloSystemConfig(BaseSystemConfig):
    """Configuration for one Elo rating engine."""

    parameters: EloParameters = field(default_factory=EloParameters)
    smart_score: SmartScoreParameters = field(default_factory=SmartScoreParameters)

    def as_config_json(self) -> dict[str, Any]:
        return {
            "lookback_days": self.lookback_days,
            "elo": asdict(self.parameters),
            "smart_score": asdict(self.smart_score),
        }


def load_elo_system_config(file_path: Path = DEFAULT_CONFIG_PATH) -> EloSystemConfig:
    """Load and validate one Elo TOML config file."""
    return load_system_config(file_path, _parse_elo_system_config)


def load_elo_system_configs(config_dir: Path) -> list[EloSystemConfig]:
    """Load and validate all Elo system TOML config files in a directory."""
    return load_system_configs(
        config_dir,
        _parse_elo_system_config,
        duplicate_name_label="elo",
    )


def _parse_elo_system_config(raw: dict[str, Any], file_path: Path) -> EloSystemConfig:
    system_raw = raw.get("system", {})
    elo_raw = raw.get("elo", {})
    smart_raw = raw.get("smart_score", {})

    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)

    lookback_days = int(system_raw.get("lookback_days", 30))
    if lookback_days < 0:
        raise ValueError(f"{file_path}: [system].lookback_days must be >= 0")

    defaults = EloParameters()
    parameters = EloParameters(
        default_rating=int(elo_raw.get("default_rating", defaults.default_rating)),
        rating_floor=int(elo_raw.get("rating_floor", defaults.rating_floor)),
        scale_factor=float(elo_raw.get("scale_factor", defaults.scale_factor)),
        k_factor=float(elo_raw.get("k_factor", defaults.k_factor)),
        k_factor_new=float(elo_raw.get("k_factor_new", defaults.k_factor_new)),
        k_factor_high=float(elo_raw.get("k_factor_high", defaults.k_factor_high)),
        new_entity_match_threshold=int(
            elo_raw.get("new_entity_match_threshold", defaults.new_entity_match_threshold)
        ),
        high_rating_threshold=int(elo_raw.get("high_rating_threshold", defaults.high_rating_threshold)),
        win_multiplier=float(elo_raw.get("win_multiplier", defaults.win_multiplier)),
        win_penalty_multiplier=float(
            elo_raw.get("win_penalty_multiplier", defaults.win_penalty_multiplier)
        ),
        draw_multiplier=float(elo_raw.get("draw_multiplier", defaults.draw_multiplier)),
        goal_bonus_threshold=int(elo_raw.get("goal_bonus_threshold", defaults.goal_bonus_threshold)),
        goal_bonus=int(elo_raw.get("goal_bonus", defaults.goal_bonus)),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    smart_defaults = SmartScoreParameters()
    smart_score = SmartScoreParameters(
        rating_weight=float(smart_raw.get("rating_weight", smart_defaults.rating_weight)),
        consistency_weight=float(smart_raw.get("consistency_weight", smart_defaults.consistency_weight)),
        winrate_weight=float(smart_raw.get("winrate_weight", smart_defaults.winrate_weight)),
        activity_weight=float(smart_raw.get("activity_weight", smart_defaults.activity_weight)),
        consistency_floor=float(smart_raw.get("consistency_floor", smart_defaults.consistency_floor)),
        consistency_ceiling=float(smart_raw.get("consistency_ceiling", smart_defaults.consistency_ceiling)),
        consistency_default=float(smart_raw.get("consistency_default", smart_defaults.consistency_default)),
        consistency_stddev_multiplier=float(
            smart_raw.get("consistency_stddev_multiplier", smart_defaults.consistency_stddev_multiplier)
        ),
        player_activity_cap=int(smart_raw.get("player_activity_cap", smart_defaults.player_activity_cap)),
        pair_activity_cap=int(smart_raw.get("pair_activity_cap", smart_defaults.pair_activity_cap)),
    )
    _validate_smart_score(file_path=file_path, parameters=smart_score)

    return EloSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        lookback_days=lookback_days,
        parameters=parameters,
        smart_score=smart_score,
    )


def _validate_parameters(*, file_path: Path, parameters: EloParameters) -> None:
    if parameters.rating_floor < 0:
        raise ValueError(f"{file_path}: [elo].rating_floor must be >= 0")
    if parameters.default_rating < parameters.rating_floor:
        raise ValueError(f"{file_path}: [elo].default_rating must be >= rating_floor")
    if parameters.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [elo].scale_factor must be > 0")
    if parameters.k_factor <= 0.0:
        raise ValueError(f"{file_path}: [elo].k_factor must be > 0")
    if parameters.k_factor_new <= 0.0:
        raise ValueError(f"{file_path}: [elo].k_factor_new must be > 0")
    if parameters.k_factor_high <= 0.0:
        raise ValueError(f"{file_path}: [elo].k_factor_high must be > 0")
    if parameters.new_entity_match_threshold < 0:
        raise ValueError(f"{file_path}: [elo].new_entity_match_threshold must be >= 0")
    if parameters.win_penalty_multiplier < 0.5 or parameters.win_penalty_multiplier > 1.0:
        raise ValueError(f"{file_path}: [elo].win_penalty_multiplier must be between 0.5 and 1")
    if parameters.draw_multiplier < 0.0 or parameters.draw_multiplier > 1.0:
        raise ValueError(f"{file_path}: [elo].draw_multiplier must be between 0 and 1")
    if parameters.win_multiplier <= 0.0 or parameters.win_multiplier > 1.0:
        raise ValueError(f"{file_path}: [elo].win_multiplier must be in (0, 1]")
    if parameters.goal_bonus_threshold < 1:
        raise ValueError(f"{file_path}: [elo].goal_bonus_threshold must be >= 1")
    if parameters.goal_bonus < 0:
        raise ValueError(f"{file_path}: [elo].goal_bonus must be >= 0")


def _validate_smart_score(*, file_path: Path, parameters: SmartScoreParameters) -> None:
    for weight_name in ("rating_weight", "consistency_weight", "winrate_weight", "activity_weight"):
        if getattr(parameters, weight_name) < 0.0:
            raise ValueError(f"{file_path}: [smart_score].{weight_name} must be >= 0")
    if parameters.consistency_floor > parameters.consistency_ceiling:
        raise ValueError(f"{file_path}: [smart_score].consistency_floor must be <= consistency_ceiling")
    if parameters.player_activity_cap <= 0:
        raise ValueError(f"{file_path}: [smart_score].player_activity_cap must be > 0")
    if parameters.pair_activity_cap <= 0:
        raise ValueError(f"{file_path}: [smart_score].pair_activity_cap must be > 0")


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EloSystemConfig",
    "load_elo_system_config",
    "load_elo_system_configs",
]

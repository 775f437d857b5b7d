"""提供社会仿真引擎所需的配置模型与读取工具。

所有概率字段均表示「每 tick 概率」：引擎在每个 tick 内对该事件做一次伯努利试验。
比率字段（出生率、死亡率）同样按 tick 解释，不做年化换算。
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class SimulationParameters(BaseModel):
    """定义仿真运行的时间尺度、地图与规模参数。"""

    name: str = Field(default="nocracy")
    seed: int = Field(default=42)
    map_size: int = Field(default=1000, ge=10)
    initial_population: int = Field(default=50, ge=1)
    max_population: int = Field(default=500, ge=1)
    tick_rate_hz: float = Field(default=1.0, ge=0.1, le=10.0)
    # 每隔多少 tick 冻结一次历史快照
    snapshot_interval: int = Field(default=100, ge=1)
    snapshot_capacity: int = Field(default=1000, ge=1)
    # population/economy 滚动历史与治理日志的容量
    history_limit: int = Field(default=500, ge=1)
    log_limit: int = Field(default=500, ge=1)
    initial_houses: int = Field(default=10, ge=0)


class PopulationConfig(BaseModel):
    """人口动态参数：出生、死亡与工资。"""

    birth_rate: float = Field(default=0.03, ge=0.0, le=1.0)
    death_rate: float = Field(default=0.005, ge=0.0, le=1.0)
    salary_base: float = Field(default=50.0, ge=0.0)
    initial_money: float = Field(default=1000.0, ge=0.0)
    movement_radius: float = Field(default=50.0, gt=0.0)
    repulsion_strength: float = Field(default=0.5, ge=0.0)


class EconomyConfig(BaseModel):
    """经济子系统的初始存量与随机事件参数。"""

    initial_currency_supply: float = Field(default=100000.0)
    min_currency_supply: float = Field(default=10000.0, ge=0.0)
    initial_taxation_level: float = Field(default=0.15, ge=0.0, le=1.0)
    initial_production_output: float = Field(default=1000.0, ge=0.0)
    # 稳定度计算中 econFactor 的参照产出
    target_production_output: float = Field(default=1000.0, gt=0.0)
    initial_inequality_index: float = Field(default=0.25, ge=0.0, le=1.0)
    initial_food: float = Field(default=10000.0, ge=0.0)
    initial_energy: float = Field(default=8000.0, ge=0.0)
    initial_materials: float = Field(default=6000.0, ge=0.0)
    initial_technology: float = Field(default=2000.0, ge=0.0)
    economic_event_chance: float = Field(default=0.02, ge=0.0, le=1.0)
    market_event_limit: int = Field(default=100, ge=1)
    building_chance: float = Field(default=0.05, ge=0.0, le=1.0)


class GovernanceConfig(BaseModel):
    """立法与法律生命周期参数。"""

    law_creation_chance: float = Field(default=0.03, ge=0.0, le=1.0)
    law_modification_chance: float = Field(default=0.02, ge=0.0, le=1.0)
    repeal_age: int = Field(default=500, ge=0)
    repeal_chance: float = Field(default=0.3, ge=0.0, le=1.0)
    deprecate_age: int = Field(default=200, ge=0)
    deprecate_chance: float = Field(default=0.2, ge=0.0, le=1.0)


class ResearchConfig(BaseModel):
    """研究推进速率。"""

    progress_rate: float = Field(default=0.01, ge=0.0)


class EthicsConfig(BaseModel):
    """伦理监督阈值。"""

    inequality_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    override_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    inequality_decay: float = Field(default=0.9, ge=0.0, le=1.0)
    taxation_step: float = Field(default=0.02, ge=0.0)
    taxation_cap: float = Field(default=0.3, ge=0.0, le=1.0)
    blocked_action_chance: float = Field(default=0.001, ge=0.0, le=1.0)
    integrity_window: int = Field(default=100, ge=1)
    integrity_penalty: float = Field(default=0.05, ge=0.0)
    integrity_floor: float = Field(default=0.5, ge=0.0, le=1.0)


class StabilityConfig(BaseModel):
    """治理模式状态机的迟滞阈值。"""

    emergency_below: float = Field(default=0.5, ge=0.0, le=1.0)
    recover_above: float = Field(default=0.7, ge=0.0, le=1.0)


class NotificationConfig(BaseModel):
    """外发通知（Telegram 等）的开关与抽样率。"""

    enabled: bool = Field(default=True)
    notify_chance: float = Field(default=0.5, ge=0.0, le=1.0)
    birth_threshold: int = Field(default=3, ge=1)


class WorldConfig(BaseModel):
    """完整的世界配置对象。"""

    simulation: SimulationParameters = Field(default_factory=SimulationParameters)
    population: PopulationConfig = Field(default_factory=PopulationConfig)
    economy: EconomyConfig = Field(default_factory=EconomyConfig)
    governance: GovernanceConfig = Field(default_factory=GovernanceConfig)
    research: ResearchConfig = Field(default_factory=ResearchConfig)
    ethics: EthicsConfig = Field(default_factory=EthicsConfig)
    stability: StabilityConfig = Field(default_factory=StabilityConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)


def _load_yaml_config(path: Path) -> dict:
    """读取并解析给定路径的 YAML 配置文件。"""
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def default_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "config" / "world_settings.yaml"


def load_world_config(config_path: Optional[Path] = None) -> WorldConfig:
    """从 YAML 文件加载世界配置。

    Parameters
    ----------
    config_path:
        可选的 YAML 配置文件路径。若未指定，则读取仓库根目录下
        ``config/world_settings.yaml``；文件不存在时返回默认配置。
    """

    if config_path is None:
        config_path = default_config_path()
    if not config_path.exists():
        return WorldConfig()

    raw = _load_yaml_config(config_path)
    return WorldConfig.model_validate(raw)


@lru_cache(maxsize=1)
def get_world_config(config_path: Optional[Path] = None) -> WorldConfig:
    """返回解析后的 :class:`WorldConfig`，并使用 LRU 缓存避免重复读取。"""

    return load_world_config(config_path=config_path)

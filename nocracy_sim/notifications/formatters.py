"""外发通知的 HTML 消息模板。

所有格式化函数都是纯函数：不读取引擎随机源，也不依赖全局状态。
反应语句通过 ``variant``（通常传入当前 tick）从固定列表中轮换选择，
保证同一输入总是得到同一消息。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

FOOTER_RULE = "━━━━━━━━━━━━━━━━━━━━"


@dataclass(frozen=True)
class StatsSummary:
    """消息尾部展示的世界概况。"""

    population: int
    production_output: float
    currency_supply: float
    inequality_index: float


_LAW_CATEGORY_EMOJI: Dict[str, str] = {
    "ECONOMIC": "💰",
    "SOCIAL": "👥",
    "RESEARCH": "🔬",
    "INFRASTRUCTURE": "🏗️",
    "ETHICAL": "⚖️",
    "EMERGENCY": "🚨",
}

_LAW_STATUS_EMOJI: Dict[str, str] = {"REPEALED": "❌", "DEPRECATED": "⚠️"}

_BUILDING_EMOJI: Dict[str, str] = {
    "HOUSE": "🏠",
    "APARTMENT": "🏢",
    "FACTORY": "🏭",
    "OFFICE": "🏛️",
    "RESEARCH_LAB": "🔬",
    "HOSPITAL": "🏥",
    "SHOP": "🏪",
    "WAREHOUSE": "📦",
    "FARM": "🚜",
    "GOVERNMENT": "🏛️",
}

_EVENT_EMOJI: Dict[str, str] = {
    "BOOM": "📈",
    "RECESSION": "📉",
    "SHORTAGE": "⚠️",
    "INNOVATION": "💡",
    "INTERVENTION": "🛠️",
}

_LAW_CREATED_REACTIONS = [
    "The governance system has spoken!",
    "A new directive enters the legal framework.",
    "Legislative protocols activated.",
    "The system adapts its rules.",
]

_LAW_MODIFIED_REACTIONS: Dict[str, List[str]] = {
    "REPEALED": [
        "This law has been removed from the legal framework.",
        "The system determined this legislation is no longer optimal.",
        "Time to move on, this law is history!",
    ],
    "DEPRECATED": [
        "This law is now under review.",
        "The system marked this for reconsideration.",
        "Status changed, effectiveness being evaluated.",
    ],
}

_BUILDING_REACTIONS = [
    "Another structure rises in the civilization!",
    "Construction complete, the city expands.",
    "New infrastructure joins the network.",
    "Building erected and ready for use.",
]

_POPULATION_REACTIONS = [
    "New citizens join the civilization!",
    "The population continues to grow.",
    "Birth rates are looking healthy.",
    "More minds join the collective.",
]

_RESEARCH_REACTIONS = [
    "A breakthrough has been achieved!",
    "New knowledge enters the system.",
    "Research milestone reached!",
    "The frontiers of knowledge expand.",
]

_EVENT_REACTIONS: Dict[str, List[str]] = {
    "BOOM": [
        "The economy is thriving!",
        "Market conditions are excellent!",
        "Economic growth accelerates!",
    ],
    "RECESSION": [
        "Economic challenges ahead.",
        "The market faces difficulties.",
        "Recession protocols activated.",
    ],
    "SHORTAGE": [
        "Resource scarcity detected.",
        "Supply chains are strained.",
        "Shortage requires attention.",
    ],
}


def _pick(options: Sequence[str], variant: int) -> str:
    return options[variant % len(options)]


def inequality_level(index: float) -> str:
    if index < 0.3:
        return "Low"
    if index < 0.6:
        return "Moderate"
    return "High"


def format_stats_footer(stats: StatsSummary) -> str:
    level = inequality_level(stats.inequality_index)
    emoji = {"Low": "✅", "Moderate": "⚠️", "High": "🔴"}[level]
    return (
        f"\n\n{FOOTER_RULE}\n"
        "📊 <b>Current Status</b>\n"
        f"👥 Population: <b>{stats.population}</b> citizens\n"
        f"💰 Treasury: <b>{int(stats.currency_supply):,}</b> units\n"
        f"🏭 Production: <b>{int(stats.production_output):,}</b> units/tick\n"
        f"{emoji} Inequality: <b>{level}</b> ({stats.inequality_index * 100:.0f}%)"
    )


def format_law_created(
    title: str,
    category: str,
    law_id: str,
    reasoning: str,
    stats: StatsSummary,
    variant: int = 0,
) -> str:
    emoji = _LAW_CATEGORY_EMOJI.get(category, "📜")
    reaction = _pick(_LAW_CREATED_REACTIONS, variant)
    return (
        f"<b>{emoji} NEW LAW ENACTED</b>\n\n"
        f"<b>{title}</b>\n"
        f"Category: <code>{category}</code>\n"
        f"ID: <code>{law_id}</code>\n\n"
        f"<i>{reasoning}</i>\n\n"
        f"💭 {reaction}{format_stats_footer(stats)}"
    )


def format_law_modified(
    title: str,
    law_id: str,
    status: str,
    stats: StatsSummary,
    reason: Optional[str] = None,
    variant: int = 0,
) -> str:
    emoji = _LAW_STATUS_EMOJI.get(status, "📝")
    reaction = _pick(_LAW_MODIFIED_REACTIONS.get(status, ["Status updated."]), variant)
    reason_block = f"<i>{reason}</i>\n\n" if reason else ""
    return (
        f"<b>{emoji} LAW {status}</b>\n\n"
        f"<b>{title}</b>\n"
        f"ID: <code>{law_id}</code>\n\n"
        f"{reason_block}💭 {reaction}{format_stats_footer(stats)}"
    )


def format_building_created(
    building_type: str,
    name: str,
    x: float,
    y: float,
    built_by: str,
    stats: StatsSummary,
    variant: int = 0,
) -> str:
    emoji = _BUILDING_EMOJI.get(building_type, "🏗️")
    reaction = _pick(_BUILDING_REACTIONS, variant)
    return (
        f"<b>{emoji} NEW BUILDING CONSTRUCTED</b>\n\n"
        f"<b>{name}</b>\n"
        f"Type: <code>{building_type}</code>\n"
        f"📍 Location: ({x:g}, {y:g})\n"
        f"👷 Built by: <code>{built_by}</code>\n\n"
        f"💭 {reaction}{format_stats_footer(stats)}"
    )


def format_population_growth(
    total: int, births: int, stats: StatsSummary, variant: int = 0
) -> str:
    reaction = _pick(_POPULATION_REACTIONS, variant)
    return (
        "<b>👶 POPULATION GROWTH</b>\n\n"
        f"<b>{total}</b> total citizens\n"
        f"<b>+{births}</b> new births this cycle\n\n"
        f"💭 {reaction}{format_stats_footer(stats)}"
    )


def format_research_completed(
    name: str,
    description: str,
    origin_ai: str,
    stats: StatsSummary,
    variant: int = 0,
) -> str:
    reaction = _pick(_RESEARCH_REACTIONS, variant)
    return (
        "<b>🔬 RESEARCH COMPLETED</b>\n\n"
        f"<b>{name}</b>\n\n"
        f"<i>{description}</i>\n\n"
        f"🔬 Discovered by: <code>{origin_ai}</code>\n\n"
        f"💭 {reaction}{format_stats_footer(stats)}"
    )


def format_economic_event(
    event_type: str,
    impact: float,
    stats: StatsSummary,
    description: Optional[str] = None,
    variant: int = 0,
) -> str:
    emoji = _EVENT_EMOJI.get(event_type, "💹")
    sign = "+" if impact > 0 else ""
    reaction = _pick(
        _EVENT_REACTIONS.get(event_type, ["Economic conditions change."]), variant
    )
    description_block = f"<i>{description}</i>\n\n" if description else ""
    return (
        "<b>" + emoji + " ECONOMIC EVENT</b>\n\n"
        f"<b>{event_type}</b>\n"
        f"📊 Impact: <code>{sign}{impact * 100:.1f}%</code>\n\n"
        f"{description_block}💭 {reaction}{format_stats_footer(stats)}"
    )


__all__ = [
    "StatsSummary",
    "format_building_created",
    "format_economic_event",
    "format_law_created",
    "format_law_modified",
    "format_population_growth",
    "format_research_completed",
    "format_stats_footer",
    "inequality_level",
]

"""建筑建造子系统。

建筑师存在时只有建筑师参与建造并享受双倍概率，否则任一活跃代理人都可能建造。
建造成本从建造者资金转入货币供应，资金不足时本 tick 不建造。
"""

from __future__ import annotations

from typing import Optional

from ..core.entity_factory import create_building
from ..data_access.models import AgentActivity, AgentRole, Building, GovernanceAction
from ..notifications.formatters import format_building_created
from .context import TickContext

BASE_COST = 500
COST_SPREAD = 500


def process_construction(ctx: TickContext) -> Optional[Building]:
    world = ctx.world
    architects = world.active_agents(AgentRole.ARCHITECT)
    builders = architects or world.active_agents()
    if not builders:
        return None

    chance = ctx.config.economy.building_chance
    if architects:
        chance *= 2
    if ctx.rng.next() >= chance:
        return None

    builder = ctx.rng.choice(builders)
    cost = BASE_COST + ctx.rng.randint_below(COST_SPREAD)
    if builder.money < cost:
        return None

    building = create_building(ctx.rng, ctx.ids, ctx.config, ctx.tick, builder)
    builder.money -= cost
    world.economy.currency_supply += cost
    world.buildings.append(building)
    ctx.new_buildings.append(building)

    builder.activity_log.append(
        AgentActivity(
            tick=ctx.tick,
            action="BUILT",
            target=building.id,
            result=f"Constructed {building.name} ({building.type.value})",
        )
    )
    ctx.log(
        builder.id,
        GovernanceAction.BUILDING_CONSTRUCTED,
        f"{builder.name} built {building.name}",
        f"New {building.type.value} constructed at "
        f"({building.position.x:g}, {building.position.y:g})",
        affected_entities=[builder.id, building.id],
    )
    ctx.offer_notification(
        lambda: format_building_created(
            building.type.value,
            building.name,
            building.position.x,
            building.position.y,
            builder.id,
            ctx.stats(),
            variant=ctx.tick,
        )
    )
    return building


__all__ = ["process_construction"]

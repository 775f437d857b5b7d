from __future__ import annotations

import argparse
import asyncio
import logging

from nocracy_sim.core.engine_factory import create_engine


async def main(ticks: int, seed: int | None) -> None:
    engine = create_engine(seed=seed)
    clock = engine.clock
    print(f"Created world with seed {engine.seed} at tick {clock.tick}")

    for _ in range(ticks):
        delta = engine.tick()
        scores = (delta.metrics or {}).get("scores", {})
        print(
            f"Tick {delta.clock.tick} complete: population={delta.population.total}, "
            f"output={delta.economy.production_output:.0f}, "
            f"inequality={delta.economy.inequality_index:.3f}, "
            f"stability={delta.clock.stability_index:.3f} "
            f"[{delta.clock.governance_mode.value}] "
            f"health={scores.get('state_health_score', 0):.0f}"
        )

    await engine.dispatcher.drain()
    await engine.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a headless world for a few ticks.")
    parser.add_argument("--ticks", type=int, default=10)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(args.ticks, args.seed))

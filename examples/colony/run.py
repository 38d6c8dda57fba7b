"""Small mountain-hall colony.

By default runs offline: dwarves think and talk with fallback lines only.

    python examples/colony/run.py --ticks 120

To let a local Ollama server generate thoughts and speech:

    python examples/colony/run.py --llm --ticks 120

Environment variables read when `--llm` is used:
- `OLLAMA_BASE_URL` (default http://127.0.0.1:11434)
- `OLLAMA_MODEL` (default gemma3:latest)
"""

from __future__ import annotations

import argparse
import asyncio
import random

from dwarfmind import (
    Agent,
    Colony,
    ColonyMind,
    ColonySettings,
    Config,
    HealthProbe,
    MindCallbacks,
    NameRegistry,
    WorldState,
    create_dwarf,
)
from dwarfmind.cognition import ConversationManager
from dwarfmind.environment import (
    BuildProject,
    CraftingJob,
    FoodSource,
    Workshop,
    build_default_services,
    tile_map_from_rows,
)

MAP_ROWS = [
    "########################",
    "#......,,,,,,.....^^^^##",
    "#......,,,,,,.....^^##^#",
    "#..~~~.,,,,,,.....^^#^^#",
    "#..~~~..........::::^^^#",
    "#.......++++++..::::...#",
    "#.......++++++.........#",
    "#..%%%..++++++...___...#",
    "#..%%%...........___...#",
    "########################",
]


def build_colony(seed: int | None, *, use_llm: bool) -> Colony:
    rng = random.Random(seed) if seed is not None else random.Random()
    world = WorldState(map=tile_map_from_rows(MAP_ROWS))

    registry = NameRegistry()
    for x, y in ((9, 5), (10, 6), (12, 5), (4, 4), (15, 7)):
        world.dwarves.append(create_dwarf(x, y, registry=registry, rng=rng))

    services = build_default_services(rng=rng)
    services.food.add(FoodSource(food_id="berries", x=3, y=1, amount=12))
    services.food.add(FoodSource(food_id="mushrooms", x=18, y=7, amount=8))
    for x, y in ((20, 2), (21, 2), (20, 3)):
        services.construction.designate_dig(x, y)
    services.construction.add_project(BuildProject(project_id="hall-wall", structure_type="wall", x=11, y=4))
    workshop = Workshop(workshop_id="craftsdwarf-1", x=8, y=6)
    services.crafting.add_job(CraftingJob(job_id="mug-1", product="stone mug", workshop=workshop))
    services.crafting.add_job(CraftingJob(job_id="idol-1", product="bone idol", workshop=workshop))

    callbacks = MindCallbacks(
        on_thought=lambda agent, thought: print(f"  ({agent.name} thinks) {thought}"),
        on_speech=lambda speaker, listener, text: print(f'  {speaker.name} to {listener.name}: "{text}"'),
    )
    probe = None if use_llm else HealthProbe.fixed(False)
    mind = ColonyMind(probe=probe, rng=rng, callbacks=callbacks)
    mind.start()

    return Colony(
        world,
        services,
        mind=mind,
        settings=ColonySettings.from_config(),
        rng=rng,
    )


def print_report(world: WorldState, conversations: ConversationManager) -> None:
    print("\nColony report")
    for dwarf in world.dwarves:
        print(
            f"  {dwarf.name:<8} {dwarf.aspiration.value:<17} {dwarf.state.value:<15} "
            f"hunger={dwarf.hunger:5.1f} mood={dwarf.mood:5.1f} "
            f"dug={dwarf.tiles_dug} crafted={dwarf.items_crafted}"
        )
        _print_friends(dwarf, world)
    print(f"  Conversations finished: {conversations.completed}")


def _print_friends(dwarf: Agent, world: WorldState) -> None:
    for other_id, relationship in dwarf.relationships.items():
        other = world.find_dwarf(other_id)
        if other is not None and relationship.interactions:
            print(f"      knows {other.name}: affinity {relationship.affinity}, {relationship.interactions} talks")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Dwarf colony simulation")
    parser.add_argument("--llm", action="store_true", help="Generate thoughts with a local Ollama model")
    parser.add_argument("--ticks", type=int, default=Config.DEFAULT_TICK_COUNT, help="Number of ticks to simulate")
    parser.add_argument("--seed", type=int, help="Random seed for reproducibility")
    return parser.parse_args()


async def main(args: argparse.Namespace) -> None:
    """Main entry point."""
    use_llm = args.llm
    if use_llm:
        try:
            Config.validate()
            print(Config.display())
        except ValueError as e:
            print(f"Configuration error: {e}")
            print("Falling back to offline thoughts")
            use_llm = False
    colony = build_colony(args.seed, use_llm=use_llm)
    try:
        await colony.run(args.ticks)
        await colony.mind.settle()
    finally:
        await colony.mind.stop()
    print_report(colony.world, colony.mind.conversations)


if __name__ == "__main__":
    asyncio.run(main(parse_args()))

"""
Solo Oracle Engine - Main Entry Point

A deterministic generative core for solo tabletop play: scene oracle,
content-pack tables, dungeon graphs, NPCs, loot and travel events.

This module provides the command line entry point, which builds a fresh
campaign and runs the requested generators against it.
"""

import sys
from pathlib import Path

# Add the project root to the Python path for module discovery
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import argparse
import logging
from dataclasses import replace
from typing import Any, Optional

from src.config import EngineConfig, DEFAULT_MAX_TABLE_DEPTH, DEFAULT_RECENT_SCENE_COUNT
from src.data_models import Campaign, NPCImportance
from src.dungeon.location_engine import LocationEngine
from src.encounter import TravelEncounterEngine, TravelEnvironment
from src.items import LootGenerator
from src.npc import NpcGenerator, NpcGenerationOptions
from src.observability import get_run_log
from src.oracle import (
    AlterationMethod,
    BookkeepingInput,
    FateLikelihood,
    SceneType,
    SoloCampaignEngine,
)
from src.tables import (
    ContentPackError,
    TableManager,
    TableOracle,
    UserTableImporter,
    load_content_pack,
    set_table_manager,
)


# Configure logging
def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


logger = logging.getLogger(__name__)


# =============================================================================
# DEMOS
# =============================================================================

def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def run_dungeon_demo(campaign: Campaign, moves: int) -> None:
    """Generate a dungeon entrance and walk it for a number of moves."""
    _banner(f"DUNGEON: entrance + {moves} moves")
    engine = LocationEngine()

    location = engine.generate_dungeon_start(campaign)
    if location is None:
        print("   No content pack available; skipping.")
        return

    node = campaign.active_node
    print(f"\n0. {location.name}: {node.summary if node else '?'}")
    for edge in location.edges_from(campaign.active_node_id or ""):
        print(f"   Exit: {edge.display_label()}")

    for step in range(1, moves + 1):
        node = engine.advance_to_next_node(campaign, "explore onward")
        if node is None:
            print(f"\n{step}. Nowhere to go.")
            break
        print(f"\n{step}. {node.summary} [{node.node_type}]")
        if node.content_summary:
            print(f"   Contents: {node.content_summary}")
        for trap in node.traps:
            print(f"   Trap: {trap.name} (detect {trap.detection_skill} DC {trap.detection_dc})")

    print(f"\n   Nodes: {len(location.nodes)}, edges: {len(location.edges)}")


def run_scene_demo(campaign: Campaign, scenes: int, config: Optional[EngineConfig] = None) -> None:
    """Play a number of scenes with canned bookkeeping."""
    _banner(f"SCENES: {scenes}")
    config = config or EngineConfig()
    engine = SoloCampaignEngine(
        ruleset_id=config.ruleset_id,
        recent_scene_count=config.recent_scene_count,
    )

    for index in range(scenes):
        scene = engine.resolve_scene(campaign, f"The party presses on (scene {campaign.scene_number})")
        print(f"\nScene {scene.scene_number}: roll {scene.roll} vs chaos {scene.chaos_factor} "
              f"-> {scene.scene_type.title}")

        if scene.scene_type == SceneType.ALTERED:
            scene = engine.apply_alteration_method(
                scene, AlterationMethod.MEANING_WORDS, campaign=campaign
            )
            print(f"   Altered: {scene.alteration_method.label} ({scene.alteration_detail})")
            print(f"   {scene.alteration_guidance}")
        elif scene.random_event is not None:
            print(f"   Random event: {scene.random_event}")

        fate = engine.ask_fate_question(campaign, "Is anyone watching?", FateLikelihood.FIFTY_FIFTY)
        print(f"   Fate: {fate.question} {fate.roll} vs {fate.target} -> {fate.outcome}")

        packet = engine.build_narration_context(campaign, scene)
        if packet.current_node:
            print(f"   At: {packet.current_node}")

        entry = engine.finalize_scene(
            campaign,
            scene,
            BookkeepingInput(
                summary=f"Scene {scene.scene_number} played out",
                new_threads=["Find the way out"],
                featured_threads=["Find the way out"] if index else [],
                pcs_in_control=index % 2 == 0,
                fate_questions=[fate],
            ),
        )
        print(f"   Recorded scene {entry.scene_number}; chaos now {campaign.chaos_factor}")


def run_npc_demo(campaign: Campaign, importance: NPCImportance) -> None:
    _banner(f"NPC: {importance.value}")
    npc = NpcGenerator().generate_npc(campaign, NpcGenerationOptions(importance=importance))
    if npc is None:
        print("   No content pack available; skipping.")
        return
    print(f"\n   {npc.name}: {npc.appearance_short}")
    print(f"   Mood: {npc.current_mood}, voice: {npc.speech_style}")
    for label, values in (
        ("Quirks", npc.quirks),
        ("Flaws", npc.flaws),
        ("Goals", npc.goals_immediate),
        ("Long-term goals", npc.goals_long_term),
        ("Backstory", npc.backstory_key_events),
    ):
        if values:
            print(f"   {label}: {'; '.join(values)}")


def run_travel_demo(campaign: Campaign, environment: TravelEnvironment) -> None:
    _banner(f"TRAVEL: {environment.value}")
    resolution = TravelEncounterEngine().resolve_travel_event(campaign, environment)
    check = resolution.check
    print(f"\n   Check {check.die_spec}: {check.roll}{check.modifier:+d} "
          f"(triggers on {check.frequency.range_min}-{check.frequency.range_max})")
    if resolution.event is None:
        print("   Nothing happens.")
        return
    print(f"   Event: {resolution.event.event}")
    for follow_up in resolution.event.follow_ups:
        print(f"   Follow-up: {follow_up}")
    if resolution.event.encounter_intensity:
        print(f"   Intensity: {resolution.event.encounter_intensity}")


def run_loot_demo(campaign: Campaign, level: int) -> None:
    _banner(f"LOOT: level {level}")
    for item in LootGenerator().random_loot(campaign, level):
        rarity = f", {item.rarity.value}" if item.rarity else ""
        print(f"\n   {item.name} ({item.category}{rarity}) from {item.source}")


def run_import_demo(manager: TableManager, path: Path, campaign: Campaign) -> None:
    """Import user tables from a JSON file and roll each one once."""
    _banner(f"IMPORT: {path}")
    definitions = UserTableImporter().import_tables(path.read_bytes())
    if not definitions:
        print("   No tables imported.")
        return
    oracle = TableOracle(manager)
    for definition in definitions:
        manager.register_table(definition)
        result = oracle.roll_message(campaign, definition.table_id, ["import"])
        print(f"\n   {definition.name} ({definition.dice_spec}): {result}")


# =============================================================================
# COMMAND LINE
# =============================================================================

def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Solo Oracle Engine - deterministic generators for solo TTRPG play",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.main --seed 42 --dungeon 5      # Build and walk a dungeon
  python -m src.main --scenes 3                 # Play three oracle scenes
  python -m src.main --npc major --loot 7       # Roll an NPC and some loot
  python -m src.main --travel wilderness -v     # Travel check with debug logs
        """
    )

    # General options
    parser.add_argument(
        "--seed",
        type=int,
        help="RNG seed for the campaign (default: current time)",
    )
    parser.add_argument(
        "--pack",
        type=Path,
        help="Content pack JSON file (default: SOLO_ORACLE_PACK or the bundled pack)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        help=f"Table recursion ceiling (default: {DEFAULT_MAX_TABLE_DEPTH})",
    )
    parser.add_argument(
        "--recent-scenes",
        type=int,
        metavar="N",
        help=f"Scenes kept in narration context (default: {DEFAULT_RECENT_SCENE_COUNT})",
    )
    parser.add_argument(
        "--ruleset",
        type=str,
        help="Ruleset for skill checks (default: srd_5e)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    # Demo options
    demo_group = parser.add_argument_group("Demo Options")
    demo_group.add_argument(
        "--dungeon",
        type=int,
        metavar="N",
        help="Generate a dungeon and advance N nodes",
    )
    demo_group.add_argument(
        "--scenes",
        type=int,
        metavar="N",
        help="Play N oracle scenes",
    )
    demo_group.add_argument(
        "--npc",
        type=str,
        choices=[importance.value for importance in NPCImportance],
        help="Generate an NPC of the given importance",
    )
    demo_group.add_argument(
        "--travel",
        type=str,
        choices=[environment.value for environment in TravelEnvironment],
        help="Make a travel encounter check in an environment",
    )
    demo_group.add_argument(
        "--loot",
        type=int,
        metavar="LEVEL",
        help="Generate loot for a character level",
    )

    # Output options
    output_group = parser.add_argument_group("Table and Log Options")
    output_group.add_argument(
        "--import-table",
        type=Path,
        metavar="PATH",
        help="Import user tables from a JSON file and roll each",
    )
    output_group.add_argument(
        "--save-log",
        type=Path,
        metavar="PATH",
        help="Save the run log as JSON",
    )

    return parser.parse_args(argv)


def create_config_from_args(
    args: argparse.Namespace, environ: Optional[dict[str, str]] = None
) -> EngineConfig:
    """Create EngineConfig from SOLO_ORACLE_* variables, overridden by any arguments given."""
    overrides: dict[str, Any] = {
        "seed": args.seed,
        "content_pack_path": args.pack,
        "max_table_depth": args.max_depth,
        "recent_scene_count": args.recent_scenes,
        "ruleset_id": args.ruleset,
        "verbose": args.verbose or None,
    }
    config = EngineConfig.from_env(environ)
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    return config


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[list[str]] = None) -> Optional[Campaign]:
    """Main entry point for CLI usage."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    print("=" * 60)
    print("SOLO ORACLE ENGINE v0.1.0")
    print("Deterministic generators for solo TTRPG play")
    print("=" * 60)

    config = create_config_from_args(args)

    try:
        pack = load_content_pack(config.content_pack_path)
    except ContentPackError as e:
        logger.error(f"Could not load content pack: {e}")
        return None

    manager = TableManager.from_pack(pack, max_depth=config.max_table_depth)
    set_table_manager(manager)

    campaign = Campaign(title="Demo Campaign", rng_seed=config.seed, content_pack_version=manager.pack_label)
    seed = campaign.ensure_seed()
    get_run_log().set_seed(seed)
    print(f"\nSeed: {seed}  Pack: {manager.pack_label}")

    ran_any = False
    if args.dungeon is not None:
        run_dungeon_demo(campaign, args.dungeon)
        ran_any = True
    if args.scenes is not None:
        run_scene_demo(campaign, args.scenes, config)
        ran_any = True
    if args.npc:
        run_npc_demo(campaign, NPCImportance(args.npc))
        ran_any = True
    if args.travel:
        run_travel_demo(campaign, TravelEnvironment(args.travel))
        ran_any = True
    if args.loot is not None:
        run_loot_demo(campaign, args.loot)
        ran_any = True
    if args.import_table:
        run_import_demo(manager, args.import_table, campaign)
        ran_any = True

    if not ran_any:
        run_dungeon_demo(campaign, 3)
        run_scene_demo(campaign, 2, config)

    print("\n" + "=" * 60)
    print(f"Done. RNG sequence {campaign.rng_sequence}, "
          f"{len(campaign.table_rolls)} table rolls, {len(campaign.event_log)} events")
    print("=" * 60)

    if args.save_log:
        get_run_log().save(args.save_log)
        print(f"Run log saved to {args.save_log}")

    return campaign


if __name__ == "__main__":
    main()

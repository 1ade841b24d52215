"""
Location Engine for the solo oracle engine.

Grows a dungeon-like graph of nodes (rooms, passages, stairs) and edges one
step at a time as the party moves. Nothing is generated ahead of play: the
entrance is rolled when a dungeon is started, and every further node is
rolled the first time someone walks into the unknown.

Movement precedence for advance_to_next_node:
1) Backtrack when the stated reason asks to go back (no dice)
2) Follow an open edge out of the current node
3) Move to an already connected node
4) Roll a new node and connect it
"""

from typing import Optional, Sequence
import logging

from src.data_models import (
    Campaign,
    LocationEdge,
    LocationEntity,
    LocationFeature,
    LocationNode,
    TableRollRecord,
    TrapEntity,
)
from src.observability.run_log import get_run_log
from src.tables.table_manager import (
    TableManager,
    attach_table_rolls,
    ensure_campaign_seed,
    location_summary,
)
from src.tables.table_oracle import resolve_table_manager
from src.tables.table_types import RollContext, TableExecution, TableSpawnEdge


logger = logging.getLogger(__name__)

BACKTRACK_KEYWORDS = ("go back", "back", "return", "retreat", "leave", "exit", "head back")

START_TAGS = ("dungeon", "entry")
ADVANCE_TAGS = ("dungeon", "advance")
EDGE_TAGS = ("dungeon", "edge")


def should_backtrack(reason: str) -> bool:
    """Check whether a movement reason asks to retrace steps."""
    normalized = reason.strip().lower()
    return any(keyword in normalized for keyword in BACKTRACK_KEYWORDS)


class LocationEngine:
    """
    Builds and walks location graphs stored on a campaign.

    Every table roll is made from the campaign's (seed, sequence) cursor and
    recorded in campaign.table_rolls. Each public operation returns None
    when no content pack is available.
    """

    def __init__(self, table_manager: Optional[TableManager] = None):
        self._table_manager = table_manager

    @property
    def table_manager(self) -> Optional[TableManager]:
        if self._table_manager is None:
            self._table_manager = resolve_table_manager(None)
        return self._table_manager

    # =========================================================================
    # DUNGEON START
    # =========================================================================

    def generate_dungeon_start(self, campaign: Campaign) -> Optional[LocationEntity]:
        """
        Create a new dungeon with its entrance node and make it active.

        Returns:
            The new LocationEntity, or None if no content pack is available
        """
        if self.table_manager is None:
            return None

        location = LocationEntity(
            name="Dungeon Entrance",
            location_type="dungeon",
            tags=["dungeon"],
            theme_tags=["ancient"],
        )
        context = self._context(campaign, location, None, START_TAGS)

        execution, records = self._roll(campaign, "dungeon_start", context)
        node = self._node_from_execution(execution)
        node.discovered = True
        node.visited_count = 1
        location.nodes.append(node)

        if node.node_type == "room":
            records += self._apply_room_shape(node, campaign, context)

        # Entrance exits stay templated until someone walks them
        for spawn in execution.spawned_edges:
            location.edges.append(self._edge_from_spawn(spawn, from_node_id=node.node_id, templated=True))

        campaign.active_location_id = location.location_id
        campaign.active_node_id = node.node_id

        if node.node_type == "room":
            records += self._add_room_contents(node, campaign, context)

        campaign.locations.append(location)
        campaign.log_event(
            f"Generated location: {location.name} ({location.location_type})",
            roll_ids=[r.record_id for r in records],
            entity_ids=[location.location_id, node.node_id],
        )
        get_run_log().log_generation(
            "location",
            f"{location.name}: {node.summary}",
            entity_id=location.location_id,
        )
        logger.info(f"Generated location {location.name} starting at {node.node_type} '{node.summary}'")
        return location

    # =========================================================================
    # MOVEMENT
    # =========================================================================

    def advance_to_next_node(self, campaign: Campaign, reason: str) -> Optional[LocationNode]:
        """
        Move the party one step from the active node.

        Args:
            campaign: Campaign whose active location/node pointers are used
            reason: Free-text reason for the move; backtrack keywords
                ("go back", "retreat", "exit", ...) send the party back

        Returns:
            The node moved to, or None if there is no active node or no
            content pack
        """
        if self.table_manager is None:
            return None
        location = campaign.active_location
        current = campaign.active_node
        if location is None or current is None:
            logger.debug("No active location node to advance from")
            return None

        backtrack = self._resolve_backtrack_node(campaign, location, current, reason)
        if backtrack is not None:
            return self._move_to(campaign, location, current, backtrack, "Returned to node", reason)

        open_edge = next((e for e in location.edges_from(current.node_id) if e.is_open), None)
        if open_edge is not None:
            return self.advance_along_edge(campaign, open_edge, reason)

        connected = self._resolve_connected_node(location, current)
        if connected is not None:
            return self._move_to(campaign, location, current, connected, "Moved to existing node", reason)

        new_node, records = self._generate_next_node(campaign, location, current)

        edge_context = self._context(campaign, location, current.node_id, EDGE_TAGS)
        edge, edge_records = self._generate_edge_template(campaign, edge_context)
        records += edge_records
        if edge is None:
            edge = LocationEdge(edge_type="passage", label="Passage")
        edge.from_node_id = current.node_id
        edge.to_node_id = new_node.node_id
        location.edges.append(edge)

        return self._arrive_at_new_node(campaign, location, current, new_node, reason, records)

    def advance_along_edge(
        self,
        campaign: Campaign,
        edge: LocationEdge,
        reason: str,
    ) -> Optional[LocationNode]:
        """
        Walk a specific edge out of the active node.

        A templated edge is described from the dungeon_edge table first. An
        open edge is completed by rolling the node it leads to.

        Returns:
            The node moved to, or None if the edge does not start at the
            active node or no content pack is available
        """
        if self.table_manager is None:
            return None
        location = campaign.active_location
        current = campaign.active_node
        if location is None or current is None:
            return None
        if edge.from_node_id != current.node_id:
            logger.debug(f"Edge {edge.edge_id} does not start at node {current.node_id}")
            return None

        records: list[TableRollRecord] = []
        if not edge.is_materialized:
            edge_context = self._context(campaign, location, current.node_id, EDGE_TAGS)
            execution, records = self._roll(campaign, "dungeon_edge", edge_context)
            if execution.spawned_edges:
                spawn = execution.spawned_edges[0]
                edge.materialize(spawn.summary, spawn.edge_type, spawn.tags)

        destination = location.get_node(edge.to_node_id)
        if destination is not None:
            return self._move_to(
                campaign, location, current, destination, "Moved to existing node", reason, records
            )

        backtrack = self._resolve_backtrack_node(campaign, location, current, reason)
        if backtrack is not None:
            return self._move_to(campaign, location, current, backtrack, "Returned to node", reason, records)

        new_node, node_records = self._generate_next_node(campaign, location, current)
        edge.to_node_id = new_node.node_id
        return self._arrive_at_new_node(
            campaign, location, current, new_node, reason, records + node_records
        )

    # =========================================================================
    # FEATURES
    # =========================================================================

    def add_feature(
        self,
        campaign: Campaign,
        name: str,
        summary: str,
        category: str = "feature",
        origin: str = "player",
    ) -> Optional[LocationFeature]:
        """
        Remember a stable, inanimate feature of the active node.

        Returns:
            The new feature, or None if there is no active node, the name is
            blank, or the node already has a feature with that name
        """
        node = campaign.active_node
        name = name.strip()
        if node is None or not name:
            return None
        if any(f.name.lower() == name.lower() for f in node.features):
            logger.debug(f"Node {node.node_id} already has feature '{name}'")
            return None

        feature = LocationFeature(
            name=name,
            summary=summary.strip(),
            category=category,
            origin=origin,
            location_node_id=node.node_id,
        )
        node.features.append(feature)
        campaign.log_event(
            f"Noted feature: {name} at {node.summary}",
            entity_ids=[node.node_id, feature.feature_id],
        )
        return feature

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _context(
        self,
        campaign: Campaign,
        location: LocationEntity,
        node_id: Optional[str],
        tags: Sequence[str],
    ) -> RollContext:
        return RollContext(
            campaign_id=campaign.campaign_id,
            scene_id=campaign.active_scene_id,
            location_id=location.location_id,
            node_id=node_id,
            tags=tuple(tags),
            danger_modifier=location.danger_modifier,
        )

    def _roll(
        self,
        campaign: Campaign,
        table_id: str,
        context: RollContext,
    ) -> tuple[TableExecution, list[TableRollRecord]]:
        """Execute a table from the campaign cursor and persist its rolls."""
        seed = ensure_campaign_seed(campaign)
        execution = self.table_manager.execute(table_id, context, seed, campaign.rng_sequence)
        records = attach_table_rolls(
            campaign,
            execution.roll_results,
            location_summary(context.location_id, context.tags),
        )
        return execution, records

    @staticmethod
    def _node_from_execution(execution: TableExecution) -> LocationNode:
        if execution.spawned_nodes:
            spawn = execution.spawned_nodes[0]
            return LocationNode(node_type=spawn.node_type, summary=spawn.summary, tags=list(spawn.tags))
        return LocationNode(node_type="room", summary="Bare stone chamber", tags=["entry"])

    @staticmethod
    def _edge_from_spawn(
        spawn: TableSpawnEdge,
        from_node_id: Optional[str] = None,
        templated: bool = False,
    ) -> LocationEdge:
        label = None if templated else spawn.summary
        edge = LocationEdge(edge_type=spawn.edge_type, label=label, from_node_id=from_node_id)
        edge.apply_tags(spawn.tags)
        return edge

    def _generate_edge_template(
        self,
        campaign: Campaign,
        context: RollContext,
    ) -> tuple[Optional[LocationEdge], list[TableRollRecord]]:
        execution, records = self._roll(campaign, "dungeon_edge", context)
        if not execution.spawned_edges:
            return None, records
        return self._edge_from_spawn(execution.spawned_edges[0]), records

    def _generate_next_node(
        self,
        campaign: Campaign,
        location: LocationEntity,
        current: LocationNode,
    ) -> tuple[LocationNode, list[TableRollRecord]]:
        context = self._context(campaign, location, current.node_id, ADVANCE_TAGS)
        execution, records = self._roll(campaign, "dungeon_next_node", context)

        node = self._node_from_execution(execution)
        node.discovered = True
        node.visited_count = 1

        if node.node_type == "room":
            records += self._apply_room_shape(node, campaign, context)
            records += self._add_room_contents(node, campaign, context)
        elif node.node_type == "passage":
            records += self._apply_content_note(node, campaign, context, "passage_features")

        location.nodes.append(node)
        return node, records

    def _apply_room_shape(
        self,
        node: LocationNode,
        campaign: Campaign,
        context: RollContext,
    ) -> list[TableRollRecord]:
        return self._apply_content_note(node, campaign, context, "room_shape")

    def _apply_content_note(
        self,
        node: LocationNode,
        campaign: Campaign,
        context: RollContext,
        table_id: str,
    ) -> list[TableRollRecord]:
        execution, records = self._roll(campaign, table_id, context)
        if execution.first_log:
            node.content_summary = execution.first_log
        return records

    def _add_room_contents(
        self,
        node: LocationNode,
        campaign: Campaign,
        context: RollContext,
    ) -> list[TableRollRecord]:
        execution, records = self._roll(campaign, "room_contents", context)
        if execution.spawned_traps:
            node.traps = [
                TrapEntity(
                    name=f"{spawn.category.capitalize()} Trap",
                    category=spawn.category,
                    trigger=spawn.trigger,
                    detection_skill=spawn.detection_skill,
                    detection_dc=spawn.detection_dc,
                    disarm_skill=spawn.disarm_skill,
                    disarm_dc=spawn.disarm_dc,
                    effect_summary=spawn.effect,
                    save_skill=spawn.save_skill,
                    save_dc=spawn.save_dc,
                    location_node_id=node.node_id,
                )
                for spawn in execution.spawned_traps
            ]
            logger.debug(f"Placed {len(node.traps)} trap(s) in '{node.summary}'")
        return records

    @staticmethod
    def _resolve_backtrack_node(
        campaign: Campaign,
        location: LocationEntity,
        current: LocationNode,
        reason: str,
    ) -> Optional[LocationNode]:
        if not should_backtrack(reason):
            return None
        if campaign.last_node_id and campaign.last_node_id != current.node_id:
            node = location.get_node(campaign.last_node_id)
            if node is not None:
                return node
        for edge in location.edges_to(current.node_id):
            if edge.one_way:
                continue
            node = location.get_node(edge.from_node_id)
            if node is not None:
                return node
        return None

    @staticmethod
    def _resolve_connected_node(location: LocationEntity, current: LocationNode) -> Optional[LocationNode]:
        for edge in location.edges_from(current.node_id):
            node = location.get_node(edge.to_node_id)
            if node is not None:
                return node
        return None

    def _move_to(
        self,
        campaign: Campaign,
        location: LocationEntity,
        current: LocationNode,
        target: LocationNode,
        verb: str,
        reason: str,
        records: Sequence[TableRollRecord] = (),
    ) -> LocationNode:
        """
        Move to a node that already exists.

        records holds any rolls made on the way, such as describing a
        templated edge, so the move can be traced back to them.
        """
        roll_ids = [r.record_id for r in records]
        target.discovered = True
        target.visited_count += 1
        campaign.active_node_id = target.node_id
        campaign.last_node_id = current.node_id
        campaign.log_event(
            f"{verb}: {target.summary} via {reason}",
            roll_ids=roll_ids,
            entity_ids=[location.location_id, target.node_id],
        )
        get_run_log().log_transition(current.summary, target.summary, reason, context={"roll_ids": roll_ids})
        logger.debug(f"{verb}: {target.summary}")
        return target

    def _arrive_at_new_node(
        self,
        campaign: Campaign,
        location: LocationEntity,
        current: LocationNode,
        new_node: LocationNode,
        reason: str,
        records: list[TableRollRecord],
    ) -> LocationNode:
        campaign.active_node_id = new_node.node_id
        campaign.last_node_id = current.node_id
        roll_ids = [r.record_id for r in records]
        campaign.log_event(
            f"Advanced to new node: {new_node.summary} via {reason}",
            roll_ids=roll_ids,
            entity_ids=[location.location_id, new_node.node_id],
        )
        get_run_log().log_transition(current.summary, new_node.summary, reason, context={"roll_ids": roll_ids})
        logger.debug(f"Advanced to new {new_node.node_type}: {new_node.summary}")
        return new_node

"""
Tests for the campaign aggregate and location graph records.
"""

from src.data_models import (
    LOCKED_EDGE_DC,
    Campaign,
    CanonizationRecord,
    EdgeState,
    LocationEdge,
    LocationEntity,
    LocationNode,
)


class TestLocationEdge:
    """Tests for edge state and flags."""

    def test_unlabelled_edge_is_templated(self):
        edge = LocationEdge("passage", from_node_id="a")
        assert edge.state == EdgeState.TEMPLATED
        assert edge.is_open
        assert edge.display_label() == "Passage"

    def test_labelled_edge_is_materialized(self):
        assert LocationEdge("door", label="Oak door").is_materialized

    def test_materialize(self):
        """Test that a templated passage takes the rolled type and flags."""
        edge = LocationEdge("passage")
        edge.materialize("Iron gate", edge_type="gate", tags=["locked", "oneWay"])
        assert edge.is_materialized
        assert edge.edge_type == "gate"
        assert edge.display_label() == "Iron gate"
        assert (edge.is_locked, edge.lock_dc, edge.is_trapped, edge.one_way) == (True, LOCKED_EDGE_DC, False, True)

    def test_materialize_keeps_specific_type(self):
        edge = LocationEdge("stairs")
        edge.materialize("Spiral stair", edge_type="door")
        assert edge.edge_type == "stairs"


class TestLocationEntity:
    """Tests for graph lookups."""

    def test_lookups(self):
        hall = LocationNode("room", "Hall")
        cellar = LocationNode("room", "Cellar")
        down = LocationEdge("stairs", from_node_id=hall.node_id, to_node_id=cellar.node_id)
        location = LocationEntity("Keep", "dungeon", nodes=[hall, cellar], edges=[down])

        assert location.get_node(cellar.node_id) is cellar
        assert location.get_node(None) is None
        assert location.get_node("missing") is None
        assert location.edges_from(hall.node_id) == [down]
        assert location.edges_to(hall.node_id) == []
        assert location.edges_to(cellar.node_id) == [down]


class TestCampaign:
    """Tests for the campaign aggregate."""

    def test_defaults(self):
        campaign = Campaign()
        assert campaign.chaos_factor == 5
        assert campaign.scene_number == 1
        assert campaign.rng_sequence == 0
        assert campaign.active_location is None
        assert campaign.active_node is None

    def test_ensure_seed_keeps_existing(self):
        assert Campaign(rng_seed=0).ensure_seed() == 0

    def test_ensure_seed_from_clock(self):
        campaign = Campaign()
        seed = campaign.ensure_seed()
        assert seed > 0
        assert campaign.ensure_seed() == seed

    def test_active_pointers(self):
        node = LocationNode("room", "Hall")
        location = LocationEntity("Keep", "dungeon", nodes=[node])
        campaign = Campaign(locations=[location])
        campaign.active_location_id = location.location_id
        campaign.active_node_id = node.node_id
        assert campaign.active_location is location
        assert campaign.active_node is node

    def test_log_event(self):
        campaign = Campaign(active_scene_id="scene-1")
        entry = campaign.log_event("Opened the door", roll_ids=["r1"])
        assert campaign.event_log == [entry]
        assert entry.scene_id == "scene-1"
        assert entry.roll_ids == ["r1"]
        assert entry.entity_ids == []

    def test_canonization_accepted(self):
        record = CanonizationRecord("The abbot lies", "likely", 5, 12, 70, "yes")
        assert record.accepted

import numpy as np
import pytest

from corridor.corridor import Corridor
from corridor.sequence import CorridorSequence, format_corridor_path, format_corridor_paths


def straight(corridor_id, x0, x1, left=2.0, right=1.5):
    points = np.column_stack([np.linspace(x0, x1, 6), np.zeros(6)])
    return Corridor.from_distances(corridor_id, points, left, right)


def curved_chain():
    # Straight lead-in joined tangentially to a left-hand bend of radius 25
    lead_in = Corridor.from_distances("lead-in", np.column_stack([np.linspace(0, 30, 7), np.zeros(7)]),
                                      3.5, 3.5, first_tangent=(1.0, 0.0), last_tangent=(1.0, 0.0))
    theta = np.radians(np.linspace(-90, -30, 9))
    bend_pts = np.array([30.0, 25.0]) + 25.0 * np.column_stack([np.cos(theta), np.sin(theta)])
    exit_dir = (np.cos(np.radians(60)), np.sin(np.radians(60)))
    bend = Corridor.from_distances("bend", bend_pts, 3.5, 3.5,
                                   first_tangent=(1.0, 0.0), last_tangent=exit_dir)
    sequence = CorridorSequence()
    sequence.append(lead_in)
    sequence.append(bend)
    return lead_in, bend, sequence


@pytest.fixture
def two_corridors():
    a = straight("A", 0.0, 10.0)
    b = straight("B", 10.0, 25.0, left=1.0, right=1.0)
    return a, b, CorridorSequence([(0.0, a), (10.0, b)])


class TestLookup:
    def test_total_length_is_sum_of_lengths(self, two_corridors):
        a, b, sequence = two_corridors
        assert sequence.total_length() == pytest.approx(a.length_reference_line() + b.length_reference_line())
        assert sequence.total_length() == pytest.approx(25.0)

    @pytest.mark.parametrize("s,expected", [(-1.0, "A"), (0.0, "A"), (9.0, "A"), (10.0, "B"), (30.0, "B")])
    def test_get_returns_owning_corridor(self, two_corridors, s, expected):
        _, _, sequence = two_corridors
        _, corridor = sequence.get(s)
        assert corridor.id == expected

    def test_queries_use_local_arc_length(self, two_corridors):
        _, _, sequence = two_corridors
        assert sequence.signed_distances_at(5.0) == (2.0, -1.5)
        assert sequence.signed_distances_at(12.0) == (1.0, -1.0)
        assert sequence.width_at(5.0) == 3.5
        assert sequence.width_at(20.0) == 2.0
        assert sequence.center_offset_at(5.0) == pytest.approx(0.25)
        assert sequence.center_offset_at(20.0) == pytest.approx(0.0)
        assert sequence.curvature_at(12.0) == pytest.approx(0.0)

    def test_empty_sequence_raises(self):
        sequence = CorridorSequence()
        with pytest.raises(IndexError):
            sequence.get(0.0)
        with pytest.raises(IndexError):
            sequence.total_length()
        with pytest.raises(IndexError):
            sequence.get_frenet_position_with_frame([0.0, 0.0], 0.0)


class TestAssembly:
    def test_insert_keeps_offsets_sorted(self):
        a = straight("A", 0.0, 10.0)
        b = straight("B", 10.0, 20.0)
        sequence = CorridorSequence()
        sequence.insert(10.0, b)
        sequence.insert(0.0, a)
        assert [(offset, c.id) for offset, c in sequence] == [(0.0, "A"), (10.0, "B")]

    def test_insert_replaces_equal_key(self):
        sequence = CorridorSequence([(0.0, straight("A", 0.0, 10.0))])
        sequence.insert(0.0, straight("A2", 0.0, 10.0))
        assert len(sequence) == 1
        assert sequence.get(0.0)[1].id == "A2"

    def test_append_chains_at_total_length(self):
        sequence = CorridorSequence()
        assert sequence.append(straight("A", 0.0, 10.0)) == 0.0
        assert sequence.append(straight("B", 10.0, 25.0)) == pytest.approx(10.0)
        assert sequence.total_length() == pytest.approx(25.0)


class TestResolution:
    def test_recurses_forward_into_next_corridor(self, two_corridors):
        _, b, sequence = two_corridors
        result = sequence.get_frenet_position_with_frame([12.0, 0.5], 9.0)
        assert result.corridor is b
        assert result.position.s == pytest.approx(2.0)
        assert result.position.l == pytest.approx(0.5)
        assert result.global_position().s == pytest.approx(12.0)
        assert result.in_coverage()

    def test_recurses_backward_into_previous_corridor(self, two_corridors):
        a, _, sequence = two_corridors
        result = sequence.get_frenet_position_with_frame([5.0, 1.0], 12.0)
        assert result.corridor is a
        assert result.global_position().s == pytest.approx(5.0)

    @pytest.mark.parametrize("point,hint,index", [([5.0, 1.0], 12.0, 0), ([12.0, -0.5], 3.0, 1)])
    def test_matches_direct_corridor_query(self, two_corridors, point, hint, index):
        corridor = two_corridors[index]
        direct = corridor.get_frenet_position_with_frame(point)
        result = two_corridors[2].get_frenet_position_with_frame(point, hint)
        assert result.position.s == pytest.approx(direct.position.s)
        assert result.position.l == pytest.approx(direct.position.l)

    def test_stays_in_hinted_corridor(self, two_corridors):
        a, _, sequence = two_corridors
        result = sequence.get_frenet_position_with_frame([3.0, -1.0], 2.0)
        assert result.corridor is a
        assert result.position.s == pytest.approx(3.0)

    def test_walks_several_corridors(self):
        corridors = [straight(name, 10.0 * i, 10.0 * (i + 1)) for i, name in enumerate("ABCD")]
        sequence = CorridorSequence()
        for corridor in corridors:
            sequence.append(corridor)
        result = sequence.get_frenet_position_with_frame([35.0, 0.0], 0.0)
        assert result.corridor.id == "D"
        assert result.global_position().s == pytest.approx(35.0)

    def test_point_after_sequence_resolves_to_last_corridor(self, two_corridors):
        _, b, sequence = two_corridors
        result = sequence.get_frenet_position_with_frame([30.0, 0.0], 0.0)
        assert result.corridor is b
        assert result.position.s == pytest.approx(20.0)
        assert not result.in_coverage()

    def test_point_before_sequence_resolves_to_first_corridor(self, two_corridors):
        a, _, sequence = two_corridors
        result = sequence.get_frenet_position_with_frame([-4.0, 0.0], 20.0)
        assert result.corridor is a
        assert result.position.s == pytest.approx(-4.0)
        assert not result.in_coverage()

    def test_gap_at_joint_does_not_turn_back(self):
        # B leaves A's end at a right angle; (11, -1) lies past A's end and before B's start
        a = straight("A", 0.0, 10.0)
        b = Corridor.from_distances("B", [(10.0, 0.0), (10.0, 5.0), (10.0, 10.0)], 1.0, 1.0)
        sequence = CorridorSequence([(0.0, a), (10.0, b)])
        result = sequence.get_frenet_position_with_frame([11.0, -1.0], 5.0)
        assert result.corridor is b
        assert result.position.s == pytest.approx(-1.0)
        assert result.position.l == pytest.approx(-1.0)

    def test_frame_maps_back_to_point(self, two_corridors):
        _, _, sequence = two_corridors
        result = sequence.get_frenet_position_with_frame([17.5, -0.75], 0.0)
        assert np.allclose(result.cartesian(), [17.5, -0.75])

    @pytest.mark.parametrize("name,s,l,hint", [
        ("bend", 3.0, 1.2, 25.0),
        ("bend", 12.0, -0.8, 5.0),
        ("lead-in", 27.0, 1.0, 35.0),
    ])
    def test_round_trip_over_curved_joint(self, name, s, l, hint):
        lead_in, bend, sequence = curved_chain()
        corridor = lead_in if name == "lead-in" else bend
        line = corridor.reference_line
        point = line.calc_position(s) + l * line.calc_normal(s)

        result = sequence.get_frenet_position_with_frame(point, hint)
        assert result.corridor is corridor
        assert result.position.s == pytest.approx(s, abs=1e-6)
        assert result.position.l == pytest.approx(l, abs=1e-6)
        assert np.allclose(result.cartesian(), point)


class TestFormatting:
    def test_sequence_prints_its_path(self, two_corridors):
        _, _, sequence = two_corridors
        assert str(sequence) == "Corridor-Path: -> A -> B\n"

    def test_format_paths(self):
        a = straight("A", 0.0, 10.0)
        b = straight("B", 10.0, 20.0)
        text = format_corridor_paths([[a, b], [a]])
        assert text == ("--- Corridor-Paths ---\n"
                        "Corridor-Path: -> A -> B\n\n"
                        "Corridor-Path: -> A\n\n")
        assert format_corridor_path([]) == "Corridor-Path:\n"

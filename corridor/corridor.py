import itertools
import logging
import math

import numpy as np

from corridor.cubic_spline import CubicSpline2D
from corridor.frenet import FrenetPolyline

logger = logging.getLogger(__name__)

_corridor_ids = itertools.count()


def _sample_arc_lengths(length, step):
    # Multiples of step below length, then one sample exactly at length
    count = int(math.floor(length / step))
    arc_lengths = [i * step for i in range(count + 1)
                   if i * step < length and not math.isclose(i * step, length)]
    arc_lengths.append(length)
    return arc_lengths


class Corridor:
    """One drivable segment: a reference curve plus left/right boundary offsets.

    ``left_bound`` and ``right_bound`` hold the signed lateral offset of each
    boundary from the reference line over its arc-length. By convention the
    left offset is positive and the right one negative.
    """

    def __init__(self, corridor_id, reference_line, left_bound, right_bound):
        self._id = next(_corridor_ids) if corridor_id is None else corridor_id
        self._reference_line = reference_line
        self._left_bound = left_bound
        self._right_bound = right_bound
        logger.debug("Corridor %s: length %.3f", self._id, self.length_reference_line())

    @classmethod
    def from_distances(cls, corridor_id, reference_points, distance_left_boundary,
                       distance_right_boundary, first_tangent=None, last_tangent=None):
        """Fixed-width corridor; both distances are given as positive magnitudes."""
        if corridor_id is None:
            corridor_id = next(_corridor_ids)
        reference_line = CubicSpline2D.from_points(
            reference_points, first_tangent, last_tangent, spline_id=corridor_id)

        num_pts = reference_line.size()
        left_bound = FrenetPolyline(num_pts)
        right_bound = FrenetPolyline(num_pts)
        for i in range(num_pts):
            arc_length = reference_line.arc_length_at_index(i)
            left_bound.set_point(i, (arc_length, distance_left_boundary))
            right_bound.set_point(i, (arc_length, -distance_right_boundary))
        return cls(corridor_id, reference_line, left_bound, right_bound)

    @classmethod
    def from_boundary_points(cls, corridor_id, reference_points, left_boundary_points,
                             right_boundary_points, first_tangent=None, last_tangent=None):
        """Variable-width corridor; boundaries are projected onto the reference line."""
        if corridor_id is None:
            corridor_id = next(_corridor_ids)
        reference_line = CubicSpline2D.from_points(
            reference_points, first_tangent, last_tangent, spline_id=corridor_id)
        left_bound = reference_line.to_frenet_polyline(left_boundary_points)
        right_bound = reference_line.to_frenet_polyline(right_boundary_points)
        return cls(corridor_id, reference_line, left_bound, right_bound)

    @property
    def id(self):
        return self._id

    @property
    def reference_line(self):
        return self._reference_line

    @property
    def left_bound(self):
        return self._left_bound

    @property
    def right_bound(self):
        return self._right_bound

    def signed_distances_at(self, arc_length):
        return (self._left_bound.deviation_at(arc_length),
                self._right_bound.deviation_at(arc_length))

    def width_at(self, arc_length):
        return (self._left_bound.deviation_at(arc_length)
                + abs(self._right_bound.deviation_at(arc_length)))

    def center_offset(self, arc_length):
        left, right = self.signed_distances_at(arc_length)
        return (left + right) * 0.5

    def curvature_at(self, arc_length):
        return self._reference_line.calc_curvature(arc_length)

    def length_reference_line(self):
        return self._reference_line.total_length()

    def frenet_frame(self, position):
        return self._reference_line.project_to_frenet(position).frame

    def get_frenet_position_with_frame(self, position, arc_length_hint=None):
        return self._reference_line.project_to_frenet(position, arc_length_hint)

    def fill_cartesian_polylines(self, step, reference_line, left_boundary, right_boundary):
        """
        Sample the corridor every `step` of arc-length, always including the end
        :param reference_line, left_boundary, right_boundary: lists, cleared and refilled with [x, y] points
        """
        if step <= 0:
            raise ValueError("step must be positive")

        reference_line.clear()
        left_boundary.clear()
        right_boundary.clear()
        for arc_length in _sample_arc_lengths(self.length_reference_line(), step):
            position = self._reference_line.calc_position(arc_length)
            normal = self._reference_line.calc_normal(arc_length)
            d_left = self._left_bound.deviation_at(arc_length)
            d_right = self._right_bound.deviation_at(arc_length)

            reference_line.append(position)
            left_boundary.append(position + d_left * normal)
            right_boundary.append(position + d_right * normal)

    def cartesian_polylines(self, step):
        reference_line, left_boundary, right_boundary = [], [], []
        self.fill_cartesian_polylines(step, reference_line, left_boundary, right_boundary)
        return np.array(reference_line), np.array(left_boundary), np.array(right_boundary)

    def __str__(self):
        return "\n".join([
            f"Corridor {self._id}",
            str(self._reference_line),
            str(self._left_bound),
            str(self._right_bound),
        ]) + "\n"

    def __repr__(self):
        return f"Corridor(id={self._id!r}, length={self.length_reference_line():.3f})"

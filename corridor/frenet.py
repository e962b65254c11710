import math

import numpy as np


class FrenetPosition:
    # s: arc-length along the reference curve
    # l: signed lateral offset, positive to the left of the travel direction
    def __init__(self, s, l):
        self.s = float(s)
        self.l = float(l)

    def __eq__(self, other):
        if not isinstance(other, FrenetPosition):
            return NotImplemented
        return self.s == other.s and self.l == other.l

    def __repr__(self):
        return f"FrenetPosition(s={self.s:.4f}, l={self.l:.4f})"


class FrenetFrame:
    """Local orthonormal frame of a reference curve at one arc-length."""

    def __init__(self, origin, tangent, normal):
        self.origin = np.asarray(origin, dtype=float)
        self.tangent = np.asarray(tangent, dtype=float)
        self.normal = np.asarray(normal, dtype=float)

    def to_cartesian(self, l):
        return self.origin + l * self.normal

    def yaw(self):
        return math.atan2(self.tangent[1], self.tangent[0])

    def __repr__(self):
        return (f"FrenetFrame(origin={self.origin.tolist()}, "
                f"tangent={self.tangent.tolist()}, normal={self.normal.tolist()})")


class FrenetPositionWithFrame:
    def __init__(self, position, frame):
        self.position = position
        self.frame = frame

    def cartesian(self):
        return self.frame.to_cartesian(self.position.l)

    def __repr__(self):
        return f"{type(self).__name__}({self.position!r}, {self.frame!r})"


class FrenetPolyline:
    """Piecewise-linear lateral offset as a function of arc-length.

    Nodes are expected in ascending arc-length order. Lookups outside the node
    range return the value of the nearest end node.
    """

    def __init__(self, size=0):
        self.s = np.zeros(size)
        self.d = np.zeros(size)

    @classmethod
    def from_points(cls, points):
        nodes = sorted(points, key=lambda p: p[0])
        polyline = cls(len(nodes))
        for i, node in enumerate(nodes):
            polyline.set_point(i, node)
        return polyline

    def size(self):
        return len(self.s)

    def set_point(self, index, point):
        if not 0 <= index < len(self.s):
            raise IndexError(f"node index {index} out of range for {len(self.s)} nodes")
        self.s[index], self.d[index] = point

    def points(self):
        return list(zip(self.s.tolist(), self.d.tolist()))

    def deviation_at(self, s):
        if len(self.s) == 0:
            return 0.0
        # np.interp holds the end values outside [s0, sN]
        return float(np.interp(s, self.s, self.d))

    def __str__(self):
        nodes = ", ".join(f"({s:.3f}, {d:.3f})" for s, d in self.points())
        return f"FrenetPolyline [{nodes}]"

import bisect
import logging
import math

import numpy as np

from corridor.frenet import FrenetFrame, FrenetPolyline, FrenetPosition, FrenetPositionWithFrame

logger = logging.getLogger(__name__)

# Nearest-point search
NEWTON_MAX_ITER = 20
NEWTON_TOL = 1e-10
SAMPLES_PER_SEGMENT = 8   # coarse samples per spline segment before refinement
HINT_SEGMENT_RADIUS = 2   # segments searched on each side of the hint's segment


class CubicSpline1D:
    def __init__(self, x, y, first_derivative=None, last_derivative=None):
        if len(x) < 2:
            raise ValueError("at least two knots are required")
        h = np.diff(x)
        if np.any(h <= 0):
            raise ValueError("x coordinates must be strictly increasing")

        self.a = [float(iy) for iy in y]
        self.b = [0.0] * (len(x) - 1)
        self.c = [0.0] * (len(x) - 1)
        self.d = [0.0] * (len(x) - 1)
        self.x = [float(ix) for ix in x]
        self.nx = len(x)  # dimension of x

        # Standard Tridiagonal Matrix Algorithm
        a_matrix = np.zeros((self.nx, self.nx))
        b_vector = np.zeros(self.nx)

        if first_derivative is None:
            a_matrix[0, 0] = 1.0
        else:
            # Clamped start: spline slope equals first_derivative
            a_matrix[0, 0] = 2.0 * h[0]
            a_matrix[0, 1] = h[0]
            b_vector[0] = 3.0 * (self.a[1] - self.a[0]) / h[0] - 3.0 * first_derivative

        if last_derivative is None:
            a_matrix[self.nx - 1, self.nx - 1] = 1.0
        else:
            a_matrix[self.nx - 1, self.nx - 2] = h[-1]
            a_matrix[self.nx - 1, self.nx - 1] = 2.0 * h[-1]
            b_vector[self.nx - 1] = 3.0 * last_derivative - 3.0 * (self.a[-1] - self.a[-2]) / h[-1]

        for i in range(1, self.nx - 1):
            a_matrix[i, i - 1] = h[i - 1]
            a_matrix[i, i] = 2.0 * (h[i - 1] + h[i])
            a_matrix[i, i + 1] = h[i]
            b_vector[i] = 3.0 * (self.a[i + 1] - self.a[i]) / h[i] - 3.0 * (self.a[i] - self.a[i - 1]) / h[i - 1]

        # Solve c coefficients
        c = np.linalg.solve(a_matrix, b_vector)

        for i in range(self.nx - 1):
            self.c[i] = c[i]
            self.b[i] = (self.a[i + 1] - self.a[i]) / h[i] - h[i] * (2.0 * c[i] + c[i + 1]) / 3.0
            self.d[i] = (c[i + 1] - c[i]) / (3.0 * h[i])

    def segment_index(self, x):
        i = bisect.bisect(self.x, x) - 1
        return min(max(i, 0), self.nx - 2)

    def __locate(self, x):
        # Queries outside the knot range are clamped to the end knots
        x = min(max(x, self.x[0]), self.x[-1])
        i = self.segment_index(x)
        return i, x - self.x[i]

    def calc_position(self, x):
        i, dx = self.__locate(x)
        return self.a[i] + self.b[i] * dx + self.c[i] * dx ** 2 + self.d[i] * dx ** 3

    def calc_first_derivative(self, x):
        i, dx = self.__locate(x)
        return self.b[i] + 2.0 * self.c[i] * dx + 3.0 * self.d[i] * dx ** 2

    def calc_second_derivative(self, x):
        i, dx = self.__locate(x)
        return 2.0 * self.c[i] + 6.0 * self.d[i] * dx


def _unit(vector):
    v = np.asarray(vector, dtype=float)
    norm = np.hypot(v[0], v[1])
    if norm == 0.0:
        raise ValueError("tangent vector must be non-zero")
    return v / norm


def _left_normal(tangent):
    return np.array([-tangent[1], tangent[0]])


class CubicSpline2D:
    """Smooth 2D curve through ordered points, parameterised by cumulative chord length.

    The parameter ``s`` approximates arc-length along the curve; every query
    clamps ``s`` to ``[0, total_length()]``. ``first_tangent``/``last_tangent``
    pin the curve direction at its endpoints, e.g. to join a neighbouring curve
    smoothly.
    """

    def __init__(self, x, y, first_tangent=None, last_tangent=None, spline_id=None):
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if len(x) != len(y):
            raise ValueError("x and y must have the same length")
        if len(x) < 2:
            raise ValueError("at least two points are required")
        if (first_tangent is None) != (last_tangent is None):
            raise ValueError("first_tangent and last_tangent must be given together")

        self.id = spline_id
        self.s = self.__calc_s(x, y)
        if np.any(np.diff(self.s) <= 0):
            raise ValueError("consecutive points must be distinct")

        if first_tangent is None:
            self.sx = CubicSpline1D(self.s, x)
            self.sy = CubicSpline1D(self.s, y)
        else:
            t0 = _unit(first_tangent)
            t1 = _unit(last_tangent)
            self.sx = CubicSpline1D(self.s, x, t0[0], t1[0])
            self.sy = CubicSpline1D(self.s, y, t0[1], t1[1])

        logger.debug("Fitted spline %s through %d points, length %.3f",
                     self.id, len(self.s), self.total_length())

    @classmethod
    def from_points(cls, points, first_tangent=None, last_tangent=None, spline_id=None):
        pts = np.asarray(points, dtype=float).reshape(-1, 2)
        return cls(pts[:, 0], pts[:, 1], first_tangent, last_tangent, spline_id)

    def __calc_s(self, x, y):
        dx = np.diff(x)
        dy = np.diff(y)
        ds = np.hypot(dx, dy)
        s = [0.0]
        s.extend(float(v) for v in np.cumsum(ds))
        return s

    def size(self):
        return len(self.s)

    def arc_length_at_index(self, i):
        return self.s[i]

    def total_length(self):
        return self.s[-1]

    def calc_position(self, s):
        x = self.sx.calc_position(s)
        y = self.sy.calc_position(s)
        return np.array([x, y])

    def calc_tangent(self, s):
        dx = self.sx.calc_first_derivative(s)
        dy = self.sy.calc_first_derivative(s)
        norm = math.hypot(dx, dy)
        if norm == 0.0:
            # Stationary point of the fit, fall back to the segment chord
            i = self.sx.segment_index(s)
            chord = np.array([self.sx.a[i + 1] - self.sx.a[i], self.sy.a[i + 1] - self.sy.a[i]])
            return chord / np.hypot(chord[0], chord[1])
        return np.array([dx / norm, dy / norm])

    def calc_normal(self, s):
        return _left_normal(self.calc_tangent(s))

    def calc_curvature(self, s):
        dx = self.sx.calc_first_derivative(s)
        ddx = self.sx.calc_second_derivative(s)
        dy = self.sy.calc_first_derivative(s)
        ddy = self.sy.calc_second_derivative(s)
        # Avoid zero division
        den = (dx ** 2 + dy ** 2)**(1.5)
        if den == 0: return 0.0
        k = (ddy * dx - ddx * dy) / den
        return k

    def calc_yaw(self, s):
        dx = self.sx.calc_first_derivative(s)
        dy = self.sy.calc_first_derivative(s)
        return math.atan2(dy, dx)

    def project_to_frenet(self, point, s_hint=None):
        """
        Project a Cartesian point onto the curve
        :param point: [x, y]
        :param s_hint: optional arc-length near the expected result; restricts the search around it
        :return: FrenetPositionWithFrame. Points before the start or beyond the end of the
                 curve are measured along the extended end tangent, so s < 0 or s > length.
        """
        p = np.asarray(point, dtype=float)
        s = self.__refine(p, self.__coarse_search(p, s_hint))
        length = self.total_length()

        origin = self.calc_position(s)
        tangent = self.calc_tangent(s)
        if s <= 0.0 or s >= length:
            ahead = float(np.dot(p - origin, tangent))
            if (s <= 0.0 and ahead < 0.0) or (s >= length and ahead > 0.0):
                s += ahead
                origin = origin + ahead * tangent

        normal = _left_normal(tangent)
        l = float(np.dot(p - origin, normal))
        return FrenetPositionWithFrame(FrenetPosition(s, l), FrenetFrame(origin, tangent, normal))

    def __coarse_search(self, p, s_hint):
        first, last = 0, self.size() - 2
        if s_hint is not None:
            i = self.sx.segment_index(s_hint)
            first = max(i - HINT_SEGMENT_RADIUS, 0)
            last = min(i + HINT_SEGMENT_RADIUS, self.size() - 2)

        best_s = self.s[first]
        best_d2 = math.inf
        for i in range(first, last + 1):
            for s in np.linspace(self.s[i], self.s[i + 1], SAMPLES_PER_SEGMENT + 1):
                e = self.calc_position(s) - p
                d2 = e[0] ** 2 + e[1] ** 2
                if d2 < best_d2:
                    best_d2 = d2
                    best_s = float(s)
        return best_s

    def __refine(self, p, s):
        # Newton iteration on the squared distance |P(s) - p|^2
        length = self.total_length()
        for _ in range(NEWTON_MAX_ITER):
            ex = self.sx.calc_position(s) - p[0]
            ey = self.sy.calc_position(s) - p[1]
            dx = self.sx.calc_first_derivative(s)
            dy = self.sy.calc_first_derivative(s)
            ddx = self.sx.calc_second_derivative(s)
            ddy = self.sy.calc_second_derivative(s)

            grad = ex * dx + ey * dy
            speed2 = dx * dx + dy * dy
            hess = speed2 + ex * ddx + ey * ddy
            if hess <= 0.0:
                # Not locally convex, take a gradient step instead
                hess = speed2
            if hess == 0.0:
                break

            s_new = min(max(s - grad / hess, 0.0), length)
            if abs(s_new - s) < NEWTON_TOL:
                return s_new
            s = s_new
        return s

    def to_frenet_polyline(self, points):
        """Lateral offset of each point from the curve, ordered by arc-length."""
        nodes = []
        for point in np.asarray(points, dtype=float).reshape(-1, 2):
            position = self.project_to_frenet(point).position
            nodes.append((position.s, position.l))
        return FrenetPolyline.from_points(nodes)

    def __str__(self):
        lines = [f"CubicSpline2D {self.id}: {self.size()} points, length {self.total_length():.3f}"]
        for s, x, y in zip(self.s, self.sx.a, self.sy.a):
            lines.append(f"  s={s:.3f} ({x:.3f}, {y:.3f})")
        return "\n".join(lines)

import math
import os

import cv2
import numpy as np

from corridor.corridor import Corridor
from corridor.render import draw_corridor_sequence, draw_point
from corridor.sequence import CorridorSequence


def build_sequence():
    # Straight lead-in, a left-hand bend, then a straight that narrows
    straight_pts = np.column_stack([np.linspace(0, 30, 7), np.zeros(7)])
    lead_in = Corridor.from_distances("lead-in", straight_pts, 3.5, 3.5,
                                      first_tangent=(1.0, 0.0), last_tangent=(1.0, 0.0))

    radius = 25.0
    center = np.array([30.0, radius])
    theta = np.radians(np.linspace(-90, -30, 9))
    bend_pts = center + radius * np.column_stack([np.cos(theta), np.sin(theta)])
    exit_dir = np.array([math.cos(math.radians(60)), math.sin(math.radians(60))])
    bend = Corridor.from_distances("bend", bend_pts, 3.5, 3.5,
                                   first_tangent=(1.0, 0.0), last_tangent=exit_dir)

    start = bend_pts[-1]
    normal = np.array([-exit_dir[1], exit_dir[0]])
    t = np.linspace(0, 20, 5)
    exit_pts = start + t[:, None] * exit_dir
    widths = np.linspace(3.5, 2.0, 5)
    left_pts = exit_pts + widths[:, None] * normal
    right_pts = exit_pts - widths[:, None] * normal
    narrowing = Corridor.from_boundary_points("narrowing", exit_pts, left_pts, right_pts,
                                              first_tangent=exit_dir, last_tangent=exit_dir)

    sequence = CorridorSequence()
    for corridor in (lead_in, bend, narrowing):
        sequence.append(corridor)
    return sequence


def cartesian_at(sequence, s, l):
    offset, corridor = sequence.get(s)
    line = corridor.reference_line
    return line.calc_position(s - offset) + l * line.calc_normal(s - offset)


def main():
    sequence = build_sequence()
    total = sequence.total_length()
    print(sequence)
    print(f"Total length: {total:.2f} m")

    image = np.zeros((600, 900, 3), dtype=np.uint8)
    origin = (-5.0, -10.0)
    pixels_per_meter = 10.0
    draw_corridor_sequence(image, sequence, origin, pixels_per_meter)

    # Track a point weaving along the chain, each query seeded with the last result
    s_hint = 0.0
    for s in np.arange(0.0, total, 2.0):
        point = cartesian_at(sequence, s, 1.5 * math.sin(s / 8.0))
        result = sequence.get_frenet_position_with_frame(point, s_hint)
        resolved = result.global_position()
        s_hint = resolved.s

        draw_point(image, point, origin, pixels_per_meter)
        if int(s) % 10 == 0:
            width = sequence.width_at(resolved.s)
            print(f"s={resolved.s:6.2f} l={resolved.l:5.2f} corridor={result.corridor.id} width={width:.2f}")

    cv2.putText(image, f"Total length: {total:.1f} m", (30, 50),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 255), 2)

    out_dir = "assets"
    if not os.path.exists(out_dir):
        os.makedirs(out_dir)
    save_path = os.path.join(out_dir, "corridor_sequence.png")
    cv2.imwrite(save_path, image)
    print(f"Saved {save_path}")


if __name__ == "__main__":
    main()

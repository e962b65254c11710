import cv2
import numpy as np

# Colors are BGR
REFERENCE_COLOR = (0, 255, 255)
BOUNDARY_COLOR = (0, 255, 0)
POINT_COLOR = (0, 0, 255)
DEFAULT_STEP = 0.5      # sampling step along the corridor [m]
LINE_THICKNESS = 2


def world_to_pixel(points, origin, pixels_per_meter, image_height):
    """
    Convert metric points to image pixel coordinates
    :param points: [[x, y], ...] in meters
    :param origin: world point drawn at the bottom-left corner of the image
    :return: int32 array of [px, py]; image y-axis is down, world y-axis is up
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    px = (pts[:, 0] - origin[0]) * pixels_per_meter
    py = image_height - (pts[:, 1] - origin[1]) * pixels_per_meter
    return np.round(np.stack([px, py], axis=1)).astype(np.int32)


def draw_corridor(image, corridor, origin, pixels_per_meter, step=DEFAULT_STEP,
                  reference_color=REFERENCE_COLOR, boundary_color=BOUNDARY_COLOR,
                  thickness=LINE_THICKNESS):
    reference_line, left_boundary, right_boundary = corridor.cartesian_polylines(step)
    height = image.shape[0]
    for polyline, color in ((reference_line, reference_color),
                            (left_boundary, boundary_color),
                            (right_boundary, boundary_color)):
        pixels = world_to_pixel(polyline, origin, pixels_per_meter, height)
        cv2.polylines(image, [pixels.reshape(-1, 1, 2)], False, color, thickness)
    return image


def draw_corridor_sequence(image, sequence, origin, pixels_per_meter, step=DEFAULT_STEP, **kwargs):
    for _, corridor in sequence:
        draw_corridor(image, corridor, origin, pixels_per_meter, step, **kwargs)
    return image


def draw_point(image, point, origin, pixels_per_meter, color=POINT_COLOR, radius=4):
    px, py = world_to_pixel([point], origin, pixels_per_meter, image.shape[0])[0]
    cv2.circle(image, (int(px), int(py)), radius, color, -1)
    return image

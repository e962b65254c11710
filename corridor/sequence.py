import bisect
import logging

from corridor.frenet import FrenetPosition, FrenetPositionWithFrame

logger = logging.getLogger(__name__)


class SequenceFrenetPosition(FrenetPositionWithFrame):
    """Projection result of a CorridorSequence.

    ``position`` is local to ``corridor``, which starts at ``offset`` on the
    sequence's global arc-length.
    """

    def __init__(self, position, frame, offset, corridor):
        super().__init__(position, frame)
        self.offset = offset
        self.corridor = corridor

    def global_position(self):
        return FrenetPosition(self.offset + self.position.s, self.position.l)

    def in_coverage(self):
        return 0.0 <= self.position.s <= self.corridor.length_reference_line()


class CorridorSequence:
    """Corridors stitched end-to-end, keyed by their start on the global arc-length.

    Each key is expected to equal the previous key plus the previous corridor's
    length; insertion does not check this.
    """

    def __init__(self, entries=()):
        self._offsets = []
        self._corridors = []
        for offset, corridor in entries:
            self.insert(offset, corridor)

    def insert(self, offset, corridor):
        offset = float(offset)
        i = bisect.bisect_left(self._offsets, offset)
        if i < len(self._offsets) and self._offsets[i] == offset:
            self._corridors[i] = corridor
        else:
            self._offsets.insert(i, offset)
            self._corridors.insert(i, corridor)

    def append(self, corridor):
        offset = self.total_length() if self._offsets else 0.0
        self.insert(offset, corridor)
        return offset

    def __len__(self):
        return len(self._offsets)

    def __iter__(self):
        return iter(zip(self._offsets, self._corridors))

    def corridors(self):
        return list(self._corridors)

    def _index(self, arc_length):
        if not self._offsets:
            raise IndexError("corridor sequence is empty")
        return max(bisect.bisect_right(self._offsets, arc_length) - 1, 0)

    def get(self, arc_length):
        """(offset, corridor) of the entry with the greatest offset <= arc_length."""
        i = self._index(arc_length)
        return self._offsets[i], self._corridors[i]

    def signed_distances_at(self, arc_length):
        offset, corridor = self.get(arc_length)
        return corridor.signed_distances_at(arc_length - offset)

    def width_at(self, arc_length):
        offset, corridor = self.get(arc_length)
        return corridor.width_at(arc_length - offset)

    def center_offset_at(self, arc_length):
        offset, corridor = self.get(arc_length)
        return corridor.center_offset(arc_length - offset)

    def curvature_at(self, arc_length):
        offset, corridor = self.get(arc_length)
        return corridor.curvature_at(arc_length - offset)

    def total_length(self):
        if not self._offsets:
            raise IndexError("corridor sequence is empty")
        return self._offsets[-1] + self._corridors[-1].length_reference_line()

    def _project(self, position, index):
        corridor = self._corridors[index]
        local = corridor.get_frenet_position_with_frame(position)
        return SequenceFrenetPosition(local.position, local.frame, self._offsets[index], corridor)

    def get_frenet_position_with_frame(self, position, start_arc_length):
        """
        Resolve a Cartesian position against the corridor that contains it
        :param position: [x, y]
        :param start_arc_length: global arc-length hint, usually the previous resolved position
        :return: SequenceFrenetPosition local to the owning corridor. A point outside the
                 whole sequence resolves against the first or last corridor, with local s
                 outside that corridor's length (see in_coverage()).
        """
        index = self._index(start_arc_length)
        result = self._project(position, index)

        # Walk one corridor at a time, never turning back
        direction = 0
        for _ in range(len(self._corridors)):
            s = result.position.s
            if s < 0.0 and index > 0 and direction <= 0:
                direction = -1
            elif (s > result.corridor.length_reference_line()
                  and index < len(self._corridors) - 1 and direction >= 0):
                direction = 1
            else:
                break
            index += direction
            logger.debug("Local s %.3f outside corridor %s, trying corridor %s",
                         s, result.corridor.id, self._corridors[index].id)
            result = self._project(position, index)

        if not result.in_coverage():
            logger.debug("Position %s outside the sequence, nearest corridor %s at s %.3f",
                         list(position), result.corridor.id, result.position.s)
        return result

    def __str__(self):
        return format_corridor_path(self._corridors)


def format_corridor_path(corridors):
    return "Corridor-Path:" + "".join(f" -> {c.id}" for c in corridors) + "\n"


def format_corridor_paths(paths):
    text = "--- Corridor-Paths ---\n"
    for path in paths:
        text += format_corridor_path(path) + "\n"
    return text

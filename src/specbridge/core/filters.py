"""Line filters that scope a run to part of a file."""

from typing import Optional

from specbridge.core.positions import PositionType, Tree

Filter = tuple[int, int]


def derive_filters(tree: Tree, position_id: str) -> Optional[list[Filter]]:
    """Derive the line filters for running a single position.

    The runner applies filters left to right as narrowing scopes, so the
    result is ordered from the outermost enclosing namespace down to the
    selected position.

    Returns:
        None for a directory, an empty list for a whole file, otherwise
        the (start line, end line) of each enclosing namespace and the
        position itself
    """
    pos = tree.get(position_id)
    if pos.type == PositionType.DIR:
        return None
    if pos.type == PositionType.FILE:
        return []

    filters = [(pos.range[0], pos.range[2])]
    for parent in tree.iter_parents(position_id):
        if parent.type != PositionType.NAMESPACE:
            break
        filters.insert(0, (parent.range[0], parent.range[2]))
    return filters

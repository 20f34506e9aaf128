"""Git conflict marker parsing and resolution."""

from typing import List, Sequence

from ..models.merge import MergeConflict
from ..services.exceptions import ResolutionCountMismatchError

OURS_MARKER = "<<<<<<<"
SEPARATOR_MARKER = "======="
THEIRS_MARKER = ">>>>>>>"


def parse_conflicts(content: str, file_path: str = "") -> List[MergeConflict]:
    """Extract conflict regions from git-marked file content.

    Args:
        content: File text containing conflict markers
        file_path: Path recorded on each conflict

    Returns:
        Conflicts in document order, with 1-based start/end lines covering the markers
    """
    conflicts = []
    ours: List[str] = []
    theirs: List[str] = []
    in_conflict = False
    in_theirs = False
    start_line = 0

    for index, line in enumerate(content.split("\n")):
        if line.startswith(OURS_MARKER):
            # A second opening marker restarts the capture
            in_conflict = True
            in_theirs = False
            start_line = index + 1
            ours, theirs = [], []
        elif in_conflict and line.startswith(SEPARATOR_MARKER):
            in_theirs = True
        elif in_conflict and line.startswith(THEIRS_MARKER):
            conflicts.append(MergeConflict(
                file_path=file_path,
                ours="\n".join(ours),
                theirs="\n".join(theirs),
                start_line=start_line,
                end_line=index + 1,
            ))
            in_conflict = False
            in_theirs = False
        elif in_conflict:
            (theirs if in_theirs else ours).append(line)

    return conflicts


def apply_resolutions(
    raw_content: str, conflicts: Sequence[MergeConflict], resolutions: Sequence[str]
) -> str:
    """Replace each conflict region with its resolution text.

    Lines outside conflict regions are copied verbatim and marker lines are
    dropped. The pass is driven by the recorded line ranges, so resolution
    text that looks like a marker is left alone.

    Raises:
        ResolutionCountMismatchError: If the number of resolutions differs from
            the number of conflicts
    """
    if len(resolutions) != len(conflicts):
        raise ResolutionCountMismatchError(
            f"Resolution count mismatch: expected {len(conflicts)}, got {len(resolutions)}"
        )

    lines = raw_content.split("\n")
    output: List[str] = []
    position = 0
    for conflict, resolution in zip(conflicts, resolutions):
        output.extend(lines[position:conflict.start_line - 1])
        text = resolution if resolution.endswith("\n") else resolution + "\n"
        output.extend(text[:-1].split("\n"))
        position = conflict.end_line

    output.extend(lines[position:])
    return "\n".join(output)

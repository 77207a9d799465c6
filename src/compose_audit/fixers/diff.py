"""Side-by-side comparison of original and patched compose text.

Rows are paired by line index, not by content. The patcher never reorders
lines, but every removal or insertion shifts later rows, so pairs after the
first edit no longer describe the same source line. Rows are meant for
display; ``is_problematic`` is what reliably marks the offending originals.
"""

from compose_audit.models import ChangeAction, ChangeRecord, DiffLine


def _is_problematic(line: str, removed: list[str]) -> bool:
    """Check if an original line matches a removed change record."""
    key = line.split(":")[0]
    for change_line in removed:
        if change_line in line or key in change_line:
            return True
    return False


def find_problematic_lines(original_lines: list[str], changes: list[ChangeRecord]) -> set[int]:
    """Indices of original lines that correspond to removed content.

    Blank lines and comments are never problematic.
    """
    removed = [c.line.strip() for c in changes if c.action == ChangeAction.REMOVED]
    if not removed:
        return set()

    problematic = set()
    for index, raw in enumerate(original_lines):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if _is_problematic(line, removed):
            problematic.add(index)
    return problematic


def generate_diff(
    original_text: str,
    patched_text: str,
    changes: list[ChangeRecord],
) -> list[DiffLine]:
    """Align original and patched text line by line.

    Args:
        original_text: The document as given.
        patched_text: Output of the patcher.
        changes: Change records from the same patch run.

    Returns:
        One DiffLine per index up to the longer of the two documents.
    """
    original_lines = original_text.split("\n")
    patched_lines = patched_text.split("\n")
    problematic = find_problematic_lines(original_lines, changes)

    diff = []
    for index in range(max(len(original_lines), len(patched_lines))):
        original = original_lines[index] if index < len(original_lines) else ""
        patched = patched_lines[index] if index < len(patched_lines) else ""
        diff.append(
            DiffLine(
                original=original,
                patched=patched,
                changed=original != patched,
                removed=original != "" and patched == "",
                added=original == "" and patched != "",
                is_problematic=index in problematic,
                line_num=index + 1,
            )
        )
    return diff

"""ASCII commit graph, in the style of ``git log --graph``.

The renderer keeps a list of columns (which commit's line occupies each text
column) and, while a commit is being drawn, a mapping from screen positions
to the column each branch line has to end up in. Lines only ever move left,
so at most one line crosses another per row and the output for a given
input order is always the same.

Feed commits in topological order (children before parents) and call
:meth:`CommitGraph.render` once per commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from plz_core.errors import GraphLayoutError

if TYPE_CHECKING:
    from plz_core.models import Commit


class GraphState(Enum):
    PADDING = "padding"
    SKIP = "skip"
    PRE_COMMIT = "pre_commit"
    COMMIT = "commit"
    POST_MERGE = "post_merge"
    COLLAPSING = "collapsing"


@dataclass
class GraphBlock:
    """Graph rows drawn for one commit.

    Every row has the same width. ``commit_row`` is the index of the row
    carrying the ``*`` marker; text describing the commit goes to its right.
    """

    hash: str
    lines: list[str] = field(default_factory=list)
    commit_row: int = 0

    @property
    def width(self) -> int:
        return len(self.lines[0]) if self.lines else 0


class CommitGraph:
    def __init__(self, commits: dict[str, Commit]):
        # Only parents present here are drawn.
        self.commits = commits

        self.commit: Commit | None = None
        self.parents: list[str] = []
        self.width = 0
        self.expansion_row = 0
        self.state = GraphState.PADDING
        self.prev_state = GraphState.PADDING
        self.commit_index = 0
        self.prev_commit_index = 0
        self.columns: list[str] = []
        self.new_columns: list[str] = []
        self.mapping: list[int] = []
        self.mapping_size = 0

    @property
    def num_parents(self) -> int:
        return len(self.parents)

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def render(self, commit: Commit, remainder: bool = True) -> GraphBlock:
        """Draw ``commit`` and return its rows.

        With ``remainder=False`` drawing stops at the commit row; the next
        commit then starts with an ellipsis row marking the unfinished part.
        """
        self.update(commit)
        block = GraphBlock(hash=commit.hash)
        while True:
            line, is_commit_row = self.next_line()
            block.lines.append(line)
            if is_commit_row:
                block.commit_row = len(block.lines) - 1
                break
        if remainder:
            while not self.is_commit_finished():
                block.lines.append(self.next_line()[0])

        width = max(len(line) for line in block.lines)
        block.lines = [line.ljust(width) for line in block.lines]
        return block

    def update(self, commit: Commit) -> None:
        self.commit = commit
        self.parents = [p for p in commit.parents if p in self.commits]
        self.prev_commit_index = self.commit_index
        self._update_columns()
        self.expansion_row = 0

        # Not _update_state: no row was drawn for the state being replaced.
        if self.state != GraphState.PADDING:
            self.state = GraphState.SKIP
        elif self._needs_pre_commit():
            self.state = GraphState.PRE_COMMIT
        else:
            self.state = GraphState.COMMIT

    def next_line(self) -> tuple[str, bool]:
        """Draw one row; the flag is True when it was the commit row."""
        state = self.state
        if state == GraphState.PADDING:
            line = self._output_padding_line()
        elif state == GraphState.SKIP:
            line = self._output_skip_line()
        elif state == GraphState.PRE_COMMIT:
            line = self._output_pre_commit_line()
        elif state == GraphState.COMMIT:
            line = self._output_commit_line()
        elif state == GraphState.POST_MERGE:
            line = self._output_post_merge_line()
        else:
            line = self._output_collapsing_line()
        return line, state == GraphState.COMMIT

    def is_commit_finished(self) -> bool:
        return self.state == GraphState.PADDING

    # ------------------------------------------------------------------ #
    # Column bookkeeping                                                   #
    # ------------------------------------------------------------------ #

    def _needs_pre_commit(self) -> bool:
        return self.num_parents >= 3 and self.commit_index < len(self.columns) - 1

    def _update_state(self, state: GraphState) -> None:
        self.prev_state = self.state
        self.state = state

    def _insert_into_new_columns(self, hash: str, mapping_index: int) -> int:
        if hash in self.new_columns:
            self.mapping[mapping_index] = self.new_columns.index(hash)
        else:
            self.mapping[mapping_index] = len(self.new_columns)
            self.new_columns.append(hash)
        return mapping_index + 2

    def _update_columns(self) -> None:
        # Columns computed for the previous commit become the current layout.
        self.columns, self.new_columns = self.new_columns, []

        self.mapping_size = 2 * (len(self.columns) + self.num_parents)
        self.mapping = [-1] * self.mapping_size

        seen_this = False
        in_columns = True
        mapping_index = 0
        for i in range(len(self.columns) + 1):
            if i == len(self.columns):
                if seen_this:
                    break
                in_columns = False
                hash = self.commit.hash
            else:
                hash = self.columns[i]

            if hash == self.commit.hash:
                seen_this = True
                self.commit_index = i
                start = mapping_index
                for parent in self.parents:
                    mapping_index = self._insert_into_new_columns(parent, mapping_index)
                # The commit takes up a column even without drawn parents.
                if mapping_index == start:
                    mapping_index += 2
            else:
                mapping_index = self._insert_into_new_columns(hash, mapping_index)

        while self.mapping_size > 1 and self.mapping[self.mapping_size - 1] < 0:
            self.mapping_size -= 1

        max_columns = len(self.columns) + self.num_parents
        if self.num_parents < 1:
            max_columns += 1
        if in_columns:
            max_columns -= 1
        self.width = max_columns * 2

    def _is_mapping_correct(self) -> bool:
        return all(target < 0 or target == i // 2 for i, target in enumerate(self.mapping[: self.mapping_size]))

    def _pad(self, line: str) -> str:
        return line.ljust(self.width)

    # ------------------------------------------------------------------ #
    # Row output                                                           #
    # ------------------------------------------------------------------ #

    def _output_padding_line(self) -> str:
        return self._pad("| " * len(self.new_columns))

    def _output_skip_line(self) -> str:
        if self._needs_pre_commit():
            self._update_state(GraphState.PRE_COMMIT)
        else:
            self._update_state(GraphState.COMMIT)
        return self._pad("...")

    def _output_pre_commit_line(self) -> str:
        # Two extra rows for every parent beyond the second.
        num_expansion_rows = (self.num_parents - 2) * 2
        if not 0 <= self.expansion_row < num_expansion_rows:
            raise GraphLayoutError(f"expansion row {self.expansion_row} out of range for {self.commit.hash}")

        parts = []
        seen_this = False
        for i, hash in enumerate(self.columns):
            if hash == self.commit.hash:
                seen_this = True
                parts.append("|" + " " * self.expansion_row)
            elif seen_this and self.expansion_row == 0:
                parts.append("\\" if self._continues_post_merge(i) else "|")
            elif seen_this:
                parts.append("\\")
            else:
                parts.append("|")
            parts.append(" ")

        self.expansion_row += 1
        if self.expansion_row >= num_expansion_rows:
            self._update_state(GraphState.COMMIT)
        return self._pad("".join(parts))

    def _continues_post_merge(self, i: int) -> bool:
        # Lines right of the previous merge were drawn as "\" on the row above.
        return self.prev_state == GraphState.POST_MERGE and self.prev_commit_index < i

    def _octopus(self) -> str:
        # The first two parents fit under the commit without dashes.
        num_dashes = (self.num_parents - 2) * 2 - 1
        return "-" * num_dashes + "."

    def _output_commit_line(self) -> str:
        parts = []
        seen_this = False
        for i in range(len(self.columns) + 1):
            if i == len(self.columns):
                if seen_this:
                    break
                hash = self.commit.hash
            else:
                hash = self.columns[i]

            if hash == self.commit.hash:
                seen_this = True
                parts.append("*")
                if self.num_parents > 2:
                    parts.append(self._octopus())
            elif seen_this and self.num_parents > 2:
                parts.append("\\")
            elif seen_this and self.num_parents == 2:
                parts.append("\\" if self._continues_post_merge(i) else "|")
            else:
                parts.append("|")
            parts.append(" ")

        if self.num_parents > 1:
            self._update_state(GraphState.POST_MERGE)
        elif self._is_mapping_correct():
            self._update_state(GraphState.PADDING)
        else:
            self._update_state(GraphState.COLLAPSING)
        return self._pad("".join(parts))

    def _output_post_merge_line(self) -> str:
        parts = []
        seen_this = False
        for i in range(len(self.columns) + 1):
            if i == len(self.columns):
                if seen_this:
                    break
                hash = self.commit.hash
            else:
                hash = self.columns[i]

            if hash == self.commit.hash:
                seen_this = True
                # First parent continues straight down, the others fan out.
                parts.append("|")
                parts.append("\\ " * (self.num_parents - 1))
            elif seen_this:
                parts.append("\\ ")
            else:
                parts.append("| ")

        if self._is_mapping_correct():
            self._update_state(GraphState.PADDING)
        else:
            self._update_state(GraphState.COLLAPSING)
        return self._pad("".join(parts))

    def _output_collapsing_line(self) -> str:
        used_horizontal = False
        horizontal_edge = -1
        horizontal_edge_target = -1
        new_mapping = [-1] * self.mapping_size

        def at(index: int) -> int:
            return new_mapping[index] if index >= 0 else -1

        for i in range(self.mapping_size):
            target = self.mapping[i]
            if target < 0:
                continue

            # Targets are assigned leftmost first, so a line never has to
            # move right.
            if target * 2 > i:
                raise GraphLayoutError(f"position {i} targeting column {target * 2}")

            if target * 2 == i:
                if new_mapping[i] != -1:
                    raise GraphLayoutError(f"position {i} already taken")
                new_mapping[i] = target
            elif at(i - 1) < 0:
                # Nothing to the left: move one step left.
                new_mapping[i - 1] = target
                if horizontal_edge == -1:
                    horizontal_edge = i
                    horizontal_edge_target = target
                    # target * 2 + 3 is the first screen position of the
                    # horizontal run.
                    for j in range(target * 2 + 3, i - 2, 2):
                        new_mapping[j] = target
            elif at(i - 1) == target:
                # Merges into the line on the left, which shares our parent.
                pass
            else:
                # Cross the line on the left; the space beyond it must be
                # empty and the line beyond that must be our target.
                if at(i - 1) <= target or at(i - 2) >= 0 or at(i - 3) != target:
                    raise GraphLayoutError(f"cannot cross over position {i - 1}")
                new_mapping[i - 2] = target
                if horizontal_edge == -1:
                    horizontal_edge = i

        if self.mapping_size and new_mapping[self.mapping_size - 1] < 0:
            self.mapping_size -= 1

        parts = []
        for i in range(self.mapping_size):
            target = new_mapping[i]
            if target < 0:
                parts.append(" ")
            elif target * 2 == i:
                parts.append("|")
            elif target == horizontal_edge_target and i != horizontal_edge - 1:
                # Only the first segment of the run continues to the next row.
                if i != target * 2 + 3:
                    new_mapping[i] = -1
                used_horizontal = True
                parts.append("_")
            else:
                if used_horizontal and i < horizontal_edge:
                    new_mapping[i] = -1
                parts.append("/")

        self.mapping = new_mapping
        if self._is_mapping_correct():
            self._update_state(GraphState.PADDING)
        return self._pad("".join(parts))

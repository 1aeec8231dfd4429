"""Tests for the ASCII commit graph renderer."""

import pytest

from plz_core.errors import GraphLayoutError
from plz_core.graph import CommitGraph, GraphState
from plz_core.models import Commit


def _commits(*specs):
    """Build commits from (hash, parents) pairs, keeping order."""
    return [Commit(hash=h, message=h, parents=tuple(p)) for h, p in specs]


def _render_all(commits, order=None):
    graph = CommitGraph({c.hash: c for c in commits})
    by_hash = {c.hash: c for c in commits}
    return [graph.render(by_hash[h]) for h in (order or [c.hash for c in commits])]


class TestLinearChain:
    def test_one_row_per_commit(self):
        commits = _commits(("D", ["C"]), ("C", ["B"]), ("B", ["A"]), ("A", []))

        blocks = _render_all(commits)

        assert len(blocks) == 4
        for block in blocks:
            assert block.lines == ["* "]
            assert block.commit_row == 0
            assert block.lines[0].count("*") == 1

    def test_parents_outside_the_set_are_not_drawn(self):
        commits = _commits(("B", ["A"]), ("A", ["not-collected"]))

        blocks = _render_all(commits)

        assert [b.lines for b in blocks] == [["* "], ["* "]]


class TestMerges:
    def test_two_way_merge(self):
        commits = _commits(("M", ["P1", "P2"]), ("P1", ["R"]), ("P2", ["R"]), ("R", []))

        blocks = _render_all(commits)

        assert [b.lines for b in blocks] == [
            ["*   ", "|\\  "],
            ["* | "],
            ["| * ", "|/  "],
            ["* "],
        ]
        assert [b.commit_row for b in blocks] == [0, 0, 0, 0]

    def test_side_branch_collapses_left(self):
        commits = _commits(("B", ["A"]), ("C", ["A"]), ("A", []))

        blocks = _render_all(commits)

        assert [b.lines for b in blocks] == [["* "], ["| * ", "|/  "], ["* "]]

    def test_octopus_merge(self):
        commits = _commits(("O", ["P1", "P2", "P3"]), ("P1", []), ("P2", []), ("P3", []))

        block = _render_all(commits)[0]

        assert block.lines == ["*-.   ", "|\\ \\  "]

    def test_octopus_left_of_another_line_expands_first(self):
        commits = _commits(
            ("X", ["O", "Y"]),
            ("O", ["P1", "P2", "P3"]),
            ("Y", []),
            ("P1", []),
            ("P2", []),
            ("P3", []),
        )

        blocks = _render_all(commits, order=["X", "O"])

        assert blocks[1].lines == [
            "| \\     ",
            "|  \\    ",
            "*-. \\   ",
            "|\\ \\ \\  ",
        ]
        assert blocks[1].commit_row == 2

    def test_rows_of_a_commit_share_one_width(self):
        commits = _commits(
            ("M", ["A", "B"]),
            ("B", ["C", "D"]),
            ("A", ["C"]),
            ("D", ["C"]),
            ("C", []),
        )

        for block in _render_all(commits):
            assert len({len(line) for line in block.lines}) == 1


class TestStateMachine:
    def test_unfinished_commit_is_followed_by_ellipsis(self):
        commits = _commits(("M", ["P1", "P2"]), ("P1", []), ("P2", []))
        graph = CommitGraph({c.hash: c for c in commits})

        first = graph.render(commits[0], remainder=False)
        second = graph.render(commits[1])

        assert first.lines == ["*   "]
        assert second.lines[0].startswith("...")
        assert second.commit_row == 1

    def test_finished_commit_returns_to_padding(self):
        commits = _commits(("M", ["P1", "P2"]), ("P1", []), ("P2", []))
        graph = CommitGraph({c.hash: c for c in commits})

        graph.render(commits[0])

        assert graph.state is GraphState.PADDING
        assert graph.is_commit_finished()

    def test_padding_row_keeps_lines(self):
        commits = _commits(("M", ["P1", "P2"]), ("P1", []), ("P2", []))
        graph = CommitGraph({c.hash: c for c in commits})
        graph.render(commits[0])

        line, is_commit_row = graph.next_line()

        assert line == "| | "
        assert not is_commit_row

    def test_moving_a_line_right_is_a_layout_error(self):
        graph = CommitGraph({})
        graph.state = GraphState.COLLAPSING
        graph.mapping = [1]
        graph.mapping_size = 1

        with pytest.raises(GraphLayoutError):
            graph.next_line()

import itertools

import pytest
from hextactics.schemas import INF, Position
from hextactics.services.astar import reachable, search
from hextactics.services.hexmap import HexArray


def P(x, y):
    return Position(x=x, y=y)


def _walled_map() -> HexArray:
    h = HexArray(9, 7)
    # 縦の壁。下端だけ通れる
    for y in range(0, 6):
        h.set(4, y, 1)
    h.set(1, 1, 1)
    h.set(6, 4, 1)
    return h


def _assert_valid_path(h: HexArray, path: list[Position], start: Position):
    assert path[0] == start
    for a, b in zip(path, path[1:]):
        assert a.hex_distance(b) == 1
    for p in path[1:]:
        assert not h.is_blocked(p)
        assert not h.is_occupied(p)
    assert len(set(path)) == len(path)


def test_adjacent_goal_within_one_step():
    h = HexArray(5, 5)
    assert search(h, P(2, 2), P(3, 2), 1) == [P(2, 2), P(3, 2)]


def test_goal_beyond_step_bound():
    h = HexArray(5, 5)
    assert P(2, 2).hex_distance(P(4, 2)) == 2
    assert search(h, P(2, 2), P(4, 2), 1) == []
    assert len(search(h, P(2, 2), P(4, 2), 2)) == 3


def test_start_is_goal():
    h = HexArray(5, 5)
    assert search(h, P(2, 2), P(2, 2), 0) == [P(2, 2)]


def test_surrounded_start_has_no_path():
    h = HexArray(5, 5)
    start = P(2, 2)
    for n in h.neighbors(start):
        h.set(n.x, n.y, 1)
    assert search(h, start, P(0, 0), 10) == []


def test_occupied_tiles_are_not_entered():
    h = HexArray(5, 5)
    start = P(2, 2)
    for i, n in enumerate(h.neighbors(start)):
        h.place(n, f"U{i}")
    assert search(h, start, P(0, 0), 10) == []


def test_occupied_goal_is_reached_with_slack():
    h = HexArray(7, 5)
    start, goal = P(0, 2), P(4, 2)
    h.place(goal, "enemy")
    assert search(h, start, goal, 10) == []
    path = search(h, start, goal, 10, slack=1)
    assert len(path) == 4
    assert path[-1].hex_distance(goal) == 1
    _assert_valid_path(h, path, start)


def test_slack_stops_short_of_goal():
    h = HexArray(7, 5)
    start, goal = P(0, 2), P(4, 2)
    assert len(search(h, start, goal, 4)) == 5
    path = search(h, start, goal, 4, slack=1)
    assert len(path) == 4
    assert path[-1].hex_distance(goal) <= 1
    # 3歩必要なので2歩では届かない
    assert search(h, start, goal, 2, slack=1) == []


def test_detour_around_wall():
    h = _walled_map()
    start, goal = P(2, 2), P(6, 2)
    dist = h.gradient_field(start)
    best = dist[goal.y][goal.x]
    assert best > start.hex_distance(goal)
    path = search(h, start, goal, best)
    assert len(path) == best + 1
    _assert_valid_path(h, path, start)
    assert search(h, start, goal, best - 1) == []


def test_bounds_and_optimality_against_bfs():
    h = _walled_map()
    start = P(1, 4)
    field = h.gradient_field(start)
    for gx, gy in itertools.product(range(h.W), range(h.H)):
        goal = P(gx, gy)
        for max_steps in range(0, 7):
            path = search(h, start, goal, max_steps)
            best = field[gy][gx]
            if h.is_blocked(goal) or best == INF or best > max_steps:
                assert path == []
                continue
            assert len(path) == best + 1
            assert path[-1] == goal
            _assert_valid_path(h, path, start)


def test_paths_with_slack_respect_bounds():
    h = _walled_map()
    start = P(2, 3)
    for gx, gy in itertools.product(range(h.W), range(h.H)):
        goal = P(gx, gy)
        for max_steps, slack in itertools.product(range(0, 5), range(0, 3)):
            path = search(h, start, goal, max_steps, slack)
            if not path:
                continue
            assert len(path) - 1 <= max_steps
            assert path[-1].hex_distance(goal) <= slack
            _assert_valid_path(h, path, start)


def test_heuristic_never_overestimates():
    h = _walled_map()
    goal = P(7, 1)
    field = h.gradient_field(goal)
    for x, y in itertools.product(range(h.W), range(h.H)):
        if field[y][x] != INF:
            assert h.distance(P(x, y), goal) <= field[y][x]


def test_equal_cost_paths_break_ties_by_position():
    h = HexArray(5, 6)
    start, goal = P(2, 2), P(2, 4)
    # (1,3) と (2,3) のどちらを通っても2歩
    assert start.hex_distance(P(1, 3)) == 1 and goal.hex_distance(P(1, 3)) == 1
    assert start.hex_distance(P(2, 3)) == 1 and goal.hex_distance(P(2, 3)) == 1
    path = search(h, start, goal, 5)
    assert path == [P(2, 2), P(1, 3), P(2, 4)]
    assert search(h, start, goal, 5) == path


def test_negative_bounds_raise():
    h = HexArray(3, 3)
    with pytest.raises(ValueError):
        search(h, P(0, 0), P(1, 0), -1)
    with pytest.raises(ValueError):
        search(h, P(0, 0), P(1, 0), 1, slack=-1)


def test_reachable_includes_start_and_ring():
    h = HexArray(7, 7)
    center = P(3, 3)
    h.place(center, "me")
    tiles = reachable(h, center, 1)
    assert tiles == {center, *h.neighbors(center)}
    assert len(reachable(h, center, 2)) == 19
    assert reachable(h, center, 0) == {center}


def test_reachable_skips_blocked_and_occupied():
    h = HexArray(7, 7)
    center = P(3, 3)
    h.place(center, "me")
    n = h.neighbors(center)
    h.set(n[0].x, n[0].y, 1)
    h.place(n[1], "other")
    tiles = reachable(h, center, 1)
    assert n[0] not in tiles
    assert n[1] not in tiles
    assert len(tiles) == 5

import random
import unittest

import pytest
from hextactics.schemas import Position, UnitState, TAG_ATTACK, TAG_MOVABLE, TAG_PATH, TAG_SELECTABLE
from hextactics.services.astar import search
from hextactics.services.hexmap import HexArray
from hextactics.services.turn import TurnController
from hextactics.services.unit import UnitHolder


def P(x, y):
    return Position(x=x, y=y)


def make_board(specs, W=7, H=7, players=2, obstacles=()):
    """specs: (id, player, (x, y), 追加属性) のリスト"""
    hexmap = HexArray(W, H)
    for x, y in obstacles:
        hexmap.set(x, y, 1)
    rng = random.Random(0)
    units = []
    for uid, player, (x, y), kw in specs:
        state = UnitState(id=uid, player=player, pos=P(x, y), **kw)
        units.append(UnitHolder(state, hexmap, rng=rng))
    return TurnController(hexmap, units, players), units


def duel(**attacker):
    """A(p0) と B(p1) が2マス離れて向かい合い、遠くに味方Cがいる盤面"""
    kw = dict(speed=2, attack=2)
    kw.update(attacker)
    return make_board([
        ("A", 0, (1, 1), kw),
        ("B", 1, (3, 1), {}),
        ("C", 0, (5, 5), {}),
    ])


def test_initial_state():
    board, (a, b, c) = duel()
    assert board.phase == "SELECT"
    assert board.player == 0
    assert board.turn == 1
    assert not board.waiting
    assert board.hexmap.highlighted(TAG_SELECTABLE) == {a.pos, c.pos}


def test_constructor_rejects_bad_arguments():
    hexmap = HexArray(4, 4)
    with pytest.raises(ValueError):
        TurnController(hexmap, [], 2)
    u = UnitHolder(UnitState(id="A", player=0, pos=P(0, 0)), hexmap)
    with pytest.raises(ValueError):
        TurnController(hexmap, [u], 1)
    v = UnitHolder(UnitState(id="B", player=2, pos=P(1, 0)), hexmap)
    with pytest.raises(ValueError):
        TurnController(hexmap, [u, v], 2)
    with pytest.raises(ValueError):
        TurnController(None, [u], 2) # type: ignore


def test_select_move_attack_cycle():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    assert board.phase == "MOVE"
    assert board.selection == P(1, 1)
    assert P(2, 1) in board.hexmap.highlighted(TAG_MOVABLE)

    board.on_primary_command(P(2, 1))
    assert a.pos == P(2, 1)
    assert board.phase == "ATTACK"
    assert board.waiting
    assert board.hexmap.highlighted(TAG_ATTACK) == {b.pos}

    # 移動再生中は入力を受け付けない
    board.on_primary_command(P(3, 1))
    board.on_secondary_command()
    board.tick()
    assert b.unit.hp == 10
    assert board.phase == "ATTACK"

    a.update()
    assert not board.waiting
    board.on_primary_command(P(3, 1))
    assert b.unit.hp == 8
    assert a.status == "wait"
    assert board.phase == "SELECT"
    assert board.player == 0
    assert board.selection is None
    assert board.hexmap.highlighted(TAG_SELECTABLE) == {c.pos}


def test_secondary_cancels_selection():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    board.on_secondary_command()
    assert board.phase == "SELECT"
    assert board.selection is None
    assert a.pos == P(1, 1)
    assert a.status == "move"
    assert board.hexmap.highlighted(TAG_SELECTABLE) == {a.pos, c.pos}
    # 選択していなければ何も起きない
    board.on_secondary_command()
    assert board.phase == "SELECT"
    assert a.status == "move"


def test_secondary_undoes_move():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    board.on_primary_command(P(2, 1))
    board.on_action_completed()
    assert a.display_pos == P(2, 1)
    assert board.phase == "ATTACK"

    board.on_secondary_command()
    assert a.pos == P(1, 1)
    assert a.status == "move"
    assert board.phase == "SELECT"
    assert board.hexmap.occupant(P(1, 1)) == "A"
    assert not board.hexmap.is_occupied(P(2, 1))
    assert P(1, 1) in board.hexmap.highlighted(TAG_SELECTABLE)


def test_confirming_selected_tile_cancels_move():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    board.on_primary_command(P(1, 1))
    assert board.phase == "SELECT"
    assert a.status == "move"
    assert a.pos == P(1, 1)


def test_cancel_move_command():
    board, (a, b, c) = duel()
    board.on_cancel_move_command()
    assert board.phase == "SELECT"
    board.on_primary_command(P(1, 1))
    board.on_cancel_move_command()
    assert board.phase == "SELECT"
    assert a.status == "move"
    assert board.hexmap.highlighted(TAG_SELECTABLE) == {a.pos, c.pos}


def test_invalid_move_targets_are_ignored():
    board, (a, b) = make_board([
        ("A", 0, (1, 1), dict(speed=2)),
        ("B", 1, (3, 1), {}),
    ], obstacles=[(0, 1)])
    board.on_primary_command(P(1, 1))
    # 敵のいるタイル、障害物、届かないタイル
    for target in (P(3, 1), P(0, 1), P(5, 1)):
        board.on_primary_command(target)
        assert board.phase == "MOVE"
        assert a.pos == P(1, 1)
        assert not board.waiting


def test_move_without_targets_ends_unit_action():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    board.on_primary_command(P(0, 1))
    assert a.pos == P(0, 1)
    assert a.status == "wait"
    assert board.phase == "SELECT"
    assert board.player == 0


def test_skip_attack_command():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    board.on_primary_command(P(2, 1))
    board.on_skip_attack_command()
    assert board.phase == "ATTACK"  # まだ再生中
    board.on_action_completed()
    board.on_skip_attack_command()
    assert board.phase == "SELECT"
    assert a.status == "wait"
    assert b.unit.hp == 10


def test_pointer_previews_path():
    board, (a, b, c) = duel()
    board.on_primary_command(P(1, 1))
    board.on_pointer(P(2, 2))
    expected = search(board.hexmap, P(1, 1), P(2, 2), a.speed)
    assert board.path == expected
    assert board.hexmap.highlighted(TAG_PATH) == set(expected)
    board.on_pointer(None)
    assert board.path == []
    assert board.hexmap.highlighted(TAG_PATH) == set()


def test_last_unit_action_passes_turn():
    board, (a, b) = make_board([
        ("A", 0, (1, 1), dict(speed=2)),
        ("B", 1, (5, 5), {}),
    ])
    board.on_primary_command(P(1, 1))
    board.on_primary_command(P(0, 1))
    assert board.player == 1
    assert board.turn == 2
    assert a.status == "move"
    assert board.hexmap.highlighted(TAG_SELECTABLE) == {b.pos}
    assert board.waiting
    a.update()
    assert not board.waiting


def test_unknown_status_raises():
    board, (a, b, c) = duel()
    a.unit.status = "bogus"  # type: ignore
    with pytest.raises(RuntimeError):
        board.on_primary_command(P(1, 1))


def test_lethal_attack_ends_game():
    board, (a, b, c) = make_board([
        ("A", 0, (1, 1), dict(speed=2, attack=10)),
        ("B", 1, (3, 1), dict(hp=2)),
        ("C", 0, (5, 5), {}),
    ])
    board.on_primary_command(P(1, 1))
    board.on_primary_command(P(2, 1))
    board.on_action_completed()
    board.on_primary_command(P(3, 1))
    assert not b.is_alive()
    assert board.game_over
    assert board.winner == 0
    assert board.hexmap.highlighted(TAG_SELECTABLE) == set()

    # 終了後は何をしても変わらない
    board.on_end_turn_command()
    board.end_phase()
    board.tick()
    board.on_primary_command(P(5, 5))
    assert board.game_over
    assert board.winner == 0
    assert board.player == 0
    assert board.phase == "SELECT"
    assert board.check_game_over()


class TestTurnRotation(unittest.TestCase):

    def test_end_turn_alternates_players(self):
        board, (a, b) = make_board([
            ("A", 0, (1, 1), {}),
            ("B", 1, (5, 5), {}),
        ])
        for i in range(6):
            self.assertEqual(board.player, i % 2)
            self.assertEqual(board.turn, i + 1)
            board.on_end_turn_command()
        self.assertEqual(board.player, 0)
        self.assertEqual(board.turn, 7)

    def test_end_turn_only_in_select(self):
        board, (a, b, c) = duel()
        board.on_primary_command(P(1, 1))
        board.on_end_turn_command()
        self.assertEqual(board.player, 0)
        self.assertEqual(board.phase, "MOVE")

    def test_end_phase_resets_units(self):
        board, (a, b, c) = duel()
        board.on_primary_command(P(1, 1))
        board.on_primary_command(P(0, 1))
        self.assertEqual(a.status, "wait")
        board.on_action_completed()
        board.on_end_turn_command()
        self.assertEqual(board.player, 1)
        self.assertEqual(a.status, "move")
        self.assertEqual(board.hexmap.highlighted(TAG_SELECTABLE), {b.pos})

    def test_players_without_units_are_skipped(self):
        board, (a, d) = make_board([
            ("A", 0, (1, 1), {}),
            ("D", 2, (5, 5), {}),
        ], players=3)
        board.on_end_turn_command()
        self.assertEqual(board.player, 2)
        board.on_end_turn_command()
        self.assertEqual(board.player, 0)
        self.assertEqual(board.turn, 3)


from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from hextactics.schemas import Phase, Position, UnitStatus
from hextactics.schemas import TAG_ATTACK, TAG_CURSOR, TAG_MOVABLE, TAG_PATH, TAG_SELECTABLE, TAG_SELECTION
from hextactics.services.astar import reachable, search
from hextactics.services.hexmap import HexArray
from hextactics.services.unit import ActionTicket, UnitHolder
from hextactics.utils.audit import dbg, match_write
if TYPE_CHECKING:
    from hextactics.services.ai_base import ComputerPlayerABC

MAX_LOGS = 50

@dataclass
class TurnState:
    """1試合分の手番状態。TurnController だけが書き換える。"""
    player: int = 0
    phase: Phase = "SELECT"
    turn: int = 1
    selection: Position|None = None
    move_from: Position|None = None  # 取り消し用の移動前位置
    status_at_select: UnitStatus|None = None
    hovered: Position|None = None
    path: list[Position] = field(default_factory=list)
    ticket: ActionTicket|None = None
    game_over: bool = False
    winner: int|None = None

    @property
    def waiting(self) -> bool:
        return self.ticket is not None and not self.ticket.done


class TurnController:
    """
    SELECT → MOVE → ATTACK の手番を進めるステートマシン。

    ホストは毎フレーム tick() を呼び、入力は on_* メソッドで渡す。
    移動を確定すると ActionTicket が完了するまで（waiting の間）全ての入力と状態遷移を止める。
    """
    def __init__(self, hexmap: HexArray, units: list[UnitHolder], players: int = 2, *, log_id: str | None = None):
        if hexmap is None:
            raise ValueError("Map cannot be None.")
        if len(units) == 0:
            raise ValueError("Units list cannot be empty.")
        if players < 2:
            raise ValueError("At least 2 players are required.")
        if any(not (0 <= u.player < players) for u in units):
            raise ValueError(f"Unit player must be in range 0..{players - 1}.")

        self.hexmap = hexmap
        self.units_list: list[UnitHolder] = list(units)
        self.players = players
        self.log_id: str | None = log_id
        self.state = TurnState()
        self.computer: dict[int, 'ComputerPlayerABC'] = {}
        self.logs: list[str] = []
        dbg(self.log_id, f"[TurnController] init W={hexmap.W} H={hexmap.H} units={len(self.units_list)} players={players}")
        match_write(self.log_id, {
            "type": "match_bootstrap",
            "map_w": hexmap.W,
            "map_h": hexmap.H,
            "map": hexmap.copy_as_list(),
            "players": players,
            "units": [u.unit.model_dump(include={"id", "player", "pos", "hp", "speed", "range", "attack"}) for u in self.units_list],
        })
        self.select_selectable()

    # --- 観測用 ---
    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def player(self) -> int:
        return self.state.player

    @property
    def turn(self) -> int:
        return self.state.turn

    @property
    def waiting(self) -> bool:
        return self.state.waiting

    @property
    def game_over(self) -> bool:
        return self.state.game_over

    @property
    def winner(self) -> int|None:
        return self.state.winner

    @property
    def selection(self) -> Position|None:
        return self.state.selection

    @property
    def path(self) -> list[Position]:
        return list(self.state.path)

    @property
    def units(self) -> list[UnitHolder]:
        """生存しているユニット"""
        return [u for u in self.units_list if u.is_alive()]

    def unit_at(self, pos: Position) -> UnitHolder|None:
        uid = self.hexmap.occupant(pos)
        if uid is None:
            return None
        return next((u for u in self.units_list if u.id == uid), None)

    def unit_by_id(self, unit_id: str) -> UnitHolder|None:
        return next((u for u in self.units_list if u.id == unit_id), None)

    def _selected_unit(self) -> UnitHolder:
        unit = self.unit_at(self.state.selection) if self.state.selection is not None else None
        if unit is None:
            raise RuntimeError(f"no unit at selection {self.state.selection}")
        return unit

    def _log(self, msg: str) -> None:
        self.logs.append(msg)
        del self.logs[:-MAX_LOGS]
        dbg(self.log_id, f"[Turn {self.state.turn}] {msg}")

    # --- コンピュータプレイヤー ---
    def attach_computer(self, ai: 'ComputerPlayerABC') -> None:
        self.computer[ai.player] = ai
        if self.state.player == ai.player:
            self.hexmap.clear_highlight(TAG_SELECTABLE)

    def is_computer(self, player: int|None = None) -> bool:
        return (self.state.player if player is None else player) in self.computer

    def _accepting(self) -> bool:
        st = self.state
        return not st.waiting and not st.game_over and not self.is_computer()

    # --- 判定とハイライト ---
    def select_selectable(self) -> bool:
        """手番プレイヤーの行動可能なユニットをハイライトする。1体でもあればTrue。"""
        nonempty = False
        for u in self.units:
            if u.player == self.state.player and u.status != "wait":
                self.hexmap.highlight(TAG_SELECTABLE, u.pos)
                nonempty = True
        return nonempty

    def attackable(self, attacker: UnitHolder, pos: Position|None = None) -> list[UnitHolder]:
        return [u for u in self.units if attacker.can_attack(u, pos)]

    def select_attackable(self, attacker: UnitHolder) -> bool:
        targets = self.attackable(attacker)
        for u in targets:
            self.hexmap.highlight(TAG_ATTACK, u.pos)
        return bool(targets)

    def select_movable(self, unit: UnitHolder) -> bool:
        tiles = reachable(self.hexmap, unit.pos, unit.speed)
        self.hexmap.highlight(TAG_MOVABLE, tiles)
        return bool(tiles)

    def _preview(self) -> None:
        """カーソル位置までの移動経路を計算して表示する（MOVEフェーズのみ）。"""
        st = self.state
        self.hexmap.clear_highlight(TAG_PATH)
        st.path = []
        if st.phase != "MOVE" or st.hovered is None or st.selection is None:
            return
        unit = self._selected_unit()
        st.path = search(self.hexmap, st.selection, st.hovered, unit.speed)
        self.hexmap.highlight(TAG_PATH, st.path)

    # --- ホストからの入力 ---
    def tick(self) -> None:
        st = self.state
        if st.waiting or st.game_over:
            return
        if self.is_computer():
            ai = self.computer[st.player]
            if ai.step():
                self.end_phase()
            self.check_game_over()

    def on_pointer(self, pos: Position|None) -> None:
        if not self._accepting():
            return
        st = self.state
        if pos == st.hovered:
            return
        if st.hovered is not None:
            self.hexmap.unhighlight(TAG_CURSOR, st.hovered)
        if pos is None or self.hexmap.is_blocked(pos):
            # 障害物と盤外は選択できない
            st.hovered = None
            if st.phase == "MOVE":
                self.hexmap.clear_highlight(TAG_PATH)
                st.path = []
            return
        st.hovered = pos
        self.hexmap.highlight(TAG_CURSOR, pos)
        if st.phase == "MOVE":
            self._preview()

    def on_primary_command(self, pos: Position|None) -> None:
        if not self._accepting():
            return
        self.on_pointer(pos)
        if self.state.hovered is None:
            return
        phase = self.state.phase
        if phase == "SELECT":
            self._select()
        elif phase == "MOVE":
            self._move()
        elif phase == "ATTACK":
            self._attack()
        else:
            raise RuntimeError(f"phase {phase} not implemented")

    def on_secondary_command(self) -> None:
        """移動を取り消して選択前の状態に戻す。"""
        st = self.state
        if not self._accepting() or st.phase == "SELECT" or st.selection is None:
            return
        unit = self._selected_unit()
        self.hexmap.clear_highlight()
        if st.move_from is not None and st.move_from != unit.pos:
            self._log(f"{unit.id} undo move ({unit.pos.x},{unit.pos.y}) -> ({st.move_from.x},{st.move_from.y})")
            match_write(self.log_id, {"type": "undo", "turn": st.turn, "unit": unit.id,
                                      "from": [unit.pos.x, unit.pos.y], "to": [st.move_from.x, st.move_from.y]})
        unit.undo_move(st.move_from if st.move_from is not None else unit.pos)
        unit.set_status(st.status_at_select or "move")
        self._clear_selection()
        st.phase = "SELECT"
        self.select_selectable()

    def on_end_turn_command(self) -> None:
        if not self._accepting() or self.state.phase != "SELECT":
            return
        self.end_phase()

    def on_skip_attack_command(self) -> None:
        st = self.state
        if not self._accepting() or st.phase != "ATTACK":
            return
        unit = self._selected_unit()
        unit.skip_attack()
        self._log(f"{unit.id} skipped attack")
        match_write(self.log_id, {"type": "skip_attack", "turn": st.turn, "unit": unit.id})
        self._unselect()

    def on_cancel_move_command(self) -> None:
        """移動せずに選択をやめる（移動権は消費しない）。"""
        if not self._accepting() or self.state.phase != "MOVE":
            return
        self._unselect()

    def on_action_completed(self) -> None:
        """非同期アクション（移動アニメーション）の完了通知。"""
        st = self.state
        ticket, st.ticket = st.ticket, None
        if ticket is None or ticket.done:
            return
        unit = self.unit_by_id(ticket.unit_id)
        if unit is not None:
            unit.skip_playback()
        ticket.complete()

    # --- 各フェーズの処理 ---
    def _select(self) -> None:
        st = self.state
        pos = st.hovered
        if pos is None or not self.hexmap.is_highlighted(pos, TAG_SELECTABLE):
            return
        unit = self.unit_at(pos)
        if unit is None:
            return
        status = unit.status
        if status == "move":
            phase: Phase = "MOVE"
        elif status == "attack":
            phase = "ATTACK"
        else:
            raise RuntimeError(f"action {status} of {unit.id} not implemented")
        self.hexmap.clear_highlight(TAG_SELECTABLE)
        st.selection = pos
        st.move_from = unit.pos
        st.status_at_select = status
        st.phase = phase
        self.hexmap.highlight(TAG_SELECTION, pos)
        if phase == "MOVE":
            self.select_movable(unit)
            self._preview()
        else:
            self.select_attackable(unit)
        self._log(f"select {unit.id}({pos.x},{pos.y}) -> {phase}")
        match_write(self.log_id, {"type": "select", "turn": st.turn, "unit": unit.id, "phase": phase})

    def _move(self) -> None:
        st = self.state
        pos = st.hovered
        if pos is None:
            return
        if pos == st.selection:
            self._unselect()
            return
        if self.hexmap.is_occupied(pos) or not st.path:
            return
        unit = self._selected_unit()
        self.commit_move(unit, st.path)
        self.hexmap.clear_highlight()
        st.selection = pos
        st.path = []
        self.hexmap.highlight(TAG_SELECTION, pos)
        self.hexmap.highlight(TAG_CURSOR, pos)
        if self.select_attackable(unit):
            st.phase = "ATTACK"
        else:
            unit.skip_attack()
            self._unselect()

    def _attack(self) -> None:
        st = self.state
        pos = st.hovered
        if pos is None or not self.hexmap.is_highlighted(pos, TAG_ATTACK):
            return
        unit = self._selected_unit()
        target = self.unit_at(pos)
        if target is None or not unit.can_attack(target):
            return
        self.commit_attack(unit, target)
        self._unselect()

    def _clear_selection(self) -> None:
        st = self.state
        st.selection = None
        st.move_from = None
        st.status_at_select = None
        st.path = []
        if st.hovered is not None:
            self.hexmap.highlight(TAG_CURSOR, st.hovered)

    def _unselect(self) -> None:
        st = self.state
        self.hexmap.clear_highlight()
        self._clear_selection()
        st.phase = "SELECT"
        if st.game_over:
            return
        if not self.select_selectable():
            self.end_phase()

    # --- ユニットへの命令（人間・CPU共通） ---
    def commit_move(self, unit: UnitHolder, path: list[Position]) -> ActionTicket:
        st = self.state
        src = unit.pos
        ticket = unit.commit_move(path)
        if not ticket.done:
            st.ticket = ticket
        dst = unit.pos
        self._log(f"{unit.id} move ({src.x},{src.y}) -> ({dst.x},{dst.y}) steps={max(0, len(path) - 1)}")
        match_write(self.log_id, {
            "type": "move",
            "turn": st.turn,
            "unit": unit.id,
            "from": [src.x, src.y],
            "to": [dst.x, dst.y],
            "path": [[p.x, p.y] for p in path],
        })
        return ticket

    def commit_attack(self, unit: UnitHolder, target: UnitHolder) -> int:
        st = self.state
        dmg = unit.commit_attack(target)
        self._log(f"{unit.id} attacks {target.id}: dmg={dmg} hp={target.unit.hp}")
        match_write(self.log_id, {
            "type": "attack",
            "turn": st.turn,
            "attacker": unit.id,
            "defender": target.id,
            "dmg": dmg,
            "hp": target.unit.hp,
        })
        if not target.is_alive():
            self._log(f"{target.id} was destroyed by {unit.id}")
            match_write(self.log_id, {"type": "destroyed", "turn": st.turn, "unit": target.id, "by": unit.id})
        self.check_game_over()
        return dmg

    # --- ターン進行 ---
    def end_phase(self) -> None:
        st = self.state
        if st.game_over:
            return
        self.hexmap.clear_highlight()
        self._clear_selection()
        for u in self.units_list:
            u.reset_for_new_turn()
        match_write(self.log_id, {"type": "turn_end", "turn": st.turn, "player": st.player})
        alive = {u.player for u in self.units}
        for _ in range(self.players):
            st.player = (st.player + 1) % self.players
            # 全滅したプレイヤーは飛ばす
            if st.player in alive:
                break
        st.turn += 1
        st.phase = "SELECT"
        self._log(f"player {st.player} turn")
        if not self.is_computer():
            self.select_selectable()

    def check_game_over(self) -> bool:
        st = self.state
        if st.game_over:
            return True
        owners = {u.player for u in self.units}
        if len(owners) <= 1:
            st.game_over = True
            st.winner = next(iter(owners), None)
            self.hexmap.clear_highlight()
            self._log(f"game over: winner player {st.winner}")
            match_write(self.log_id, {"type": "game_over", "turn": st.turn, "winner": st.winner})
        return st.game_over

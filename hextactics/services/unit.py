
import random
from typing import Callable
from hextactics.schemas import Position, UnitState, UnitStatus
from hextactics.services.hexmap import HexArray


class ActionTicket:
    """非同期アクション（移動アニメーション等）の完了トークン。

    commit_move が発行し、再生が終わるか complete() が呼ばれると完了する。
    """
    def __init__(self, unit_id: str, kind: str = "move"):
        self.unit_id = unit_id
        self.kind = kind
        self.done: bool = False
        self._callbacks: list[Callable[['ActionTicket'], None]] = []

    def on_done(self, callback: Callable[['ActionTicket'], None]) -> None:
        if self.done:
            callback(self)
        else:
            self._callbacks.append(callback)

    def complete(self) -> None:
        if self.done:
            return
        self.done = True
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb(self)

    def __repr__(self) -> str:
        return f"ActionTicket({self.kind} {self.unit_id} done={self.done})"


# 攻撃判定: 残りHPでスケールした攻撃力に±20%のばらつき
def scaled_damage(hp: int, max_hp:int, base: int, rng: random.Random|None = None) -> int:
    rng = rng or random
    hp = hp if hp is not None else max_hp
    scale = max(0.0, min(1.0, hp / float(max_hp)))
    variance = round(base * 0.2)
    raw = base + (0 if variance == 0 else rng.randint(-variance, variance))
    return max(0, round(raw * scale))


class UnitHolder:
    def __init__(self, unit: UnitState, hexmap: HexArray, *, rng: random.Random|None = None):
        self.unit: UnitState = unit
        self.hexmap = hexmap
        self.rng = rng or random.Random()
        self.display_pos: Position = unit.pos  # 表示上の位置（移動再生中は論理位置と異なる）
        self.playback: list[Position] = []  # 再生待ちの経路
        self.ticket: ActionTicket|None = None
        if unit.is_active():
            hexmap.place(unit.pos, unit.id)

    @property
    def id(self) -> str:
        return self.unit.id

    @property
    def player(self) -> int:
        return self.unit.player

    @property
    def pos(self) -> Position:
        return self.unit.pos

    @property
    def speed(self) -> int:
        return self.unit.speed

    @property
    def range(self) -> int:
        return self.unit.range

    @property
    def status(self) -> UnitStatus:
        return self.unit.status

    def set_status(self, status: UnitStatus) -> None:
        self.unit.status = status

    def is_alive(self) -> bool:
        return self.unit.is_active()

    def can_attack(self, other: 'UnitHolder', pos: Position|None = None) -> bool:
        return self.unit.can_attack(other.unit, pos)

    def _relocate(self, pos: Position) -> None:
        self.hexmap.vacate(self.unit.pos)
        self.unit.pos = pos
        self.hexmap.place(pos, self.unit.id)

    def commit_move(self, path: list[Position]) -> ActionTicket:
        """経路の終点へ移動する。論理位置は即座に更新し、表示は update() で1歩ずつ進める。"""
        ticket = ActionTicket(self.unit.id)
        if path:
            if path[0] != self.unit.pos:
                raise ValueError(f"path must start at {self.unit.pos}, not {path[0]}")
            self._relocate(path[-1])
        if self.unit.status == "move":
            self.unit.status = "attack"
        self.playback = list(path[1:])
        self.ticket = ticket
        if not self.playback:
            self.display_pos = self.unit.pos
            self._finish_playback()
        return ticket

    def update(self) -> None:
        """1フレーム分の移動再生。経路を歩き終えたらチケットを完了させる。"""
        if not self.playback:
            return
        self.display_pos = self.playback.pop(0)
        if not self.playback:
            self._finish_playback()

    def _finish_playback(self) -> None:
        ticket, self.ticket = self.ticket, None
        if ticket is not None:
            ticket.complete()

    def is_moving(self) -> bool:
        return bool(self.playback)

    def skip_playback(self) -> None:
        """再生を打ち切って論理位置へ表示を合わせる。"""
        self.playback = []
        self.display_pos = self.unit.pos
        self._finish_playback()

    def undo_move(self, pos: Position) -> None:
        """移動を取り消してposへ戻す（再生中なら打ち切る）。"""
        self.playback = []
        if pos != self.unit.pos:
            self._relocate(pos)
        self.display_pos = pos
        self._finish_playback()

    def get_damage(self) -> int:
        return scaled_damage(self.unit.hp, self.unit.max_hp, self.unit.attack, self.rng)

    def commit_attack(self, target: 'UnitHolder') -> int:
        """targetへ攻撃し、与えたダメージを返す。HPが0になったtargetは盤から取り除かれる。"""
        dmg = min(target.unit.hp, self.get_damage())
        target.unit.hp -= dmg
        if target.unit.hp <= 0:
            target.destroy()
        self.unit.status = "wait"
        return dmg

    def destroy(self) -> None:
        self.playback = []
        self.hexmap.vacate(self.unit.pos)
        self.unit.pos = Position.invalid()
        self.display_pos = self.unit.pos
        self._finish_playback()

    def skip_attack(self) -> None:
        self.unit.status = "wait"

    def reset_for_new_turn(self) -> None:
        if self.is_alive():
            self.unit.status = "move"

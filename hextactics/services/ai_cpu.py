"""
CPU向けAI実装（貪欲法の最小版）

方針:
- 1回の step() で1ユニットの1アクションだけを処理する（移動 or 攻撃）。
- 移動: 最も近い敵の射程内まで search(slack=射程) で近づく。届かなければ歩ける所まで前進。
- 攻撃: 射程内で最もHPの低い敵を攻撃。居なければ攻撃を見送る。
- 行動できるユニットがいなくなったら True を返して手番を終える。
"""

from hextactics.services.ai_base import ComputerPlayerABC
from hextactics.services.astar import search
from hextactics.services.unit import UnitHolder
from hextactics.utils.audit import dbg


class ComputerPlayerGreedy(ComputerPlayerABC):
    """最寄りの敵へ向かって攻撃するだけのCPU"""

    def __init__(self, controller, player: int, *, name: str = "CPU(Greedy)"):
        super().__init__(controller, player)
        self.name = name

    def think(self) -> bool:
        unit = next((u for u in self.my_units() if u.status != "wait"), None)
        if unit is None:
            return True
        if unit.status == "move":
            self._advance(unit)
        elif unit.status == "attack":
            self._strike(unit)
        else:
            raise RuntimeError(f"action {unit.status} of {unit.id} not implemented")
        return False

    def _approach_path(self, unit: UnitHolder, enemies: list[UnitHolder]):
        hexmap = self.controller.hexmap
        ordered = sorted(enemies, key=lambda e: (unit.pos.hex_distance(e.pos), e.id))
        for enemy in ordered:
            path = search(hexmap, unit.pos, enemy.pos, unit.speed, slack=unit.range)
            if path:
                return path
        # 今のターンでは射程に入れないので、近づける所まで進む
        limit = hexmap.W + hexmap.H
        for enemy in ordered:
            path = search(hexmap, unit.pos, enemy.pos, limit, slack=unit.range)
            if path:
                return path[:unit.speed + 1]
        return []

    def _advance(self, unit: UnitHolder) -> None:
        enemies = self.enemies()
        if not enemies or self.controller.attackable(unit):
            unit.set_status("attack")
            return
        path = self._approach_path(unit, enemies)
        if len(path) > 1:
            self.controller.commit_move(unit, path)
        else:
            dbg(self.controller.log_id, f"[{self.name}] {unit.id} holds at ({unit.pos.x},{unit.pos.y})")
            unit.set_status("attack")

    def _strike(self, unit: UnitHolder) -> None:
        targets = self.controller.attackable(unit)
        if not targets:
            unit.skip_attack()
            return
        target = min(targets, key=lambda t: (t.unit.hp, t.id))
        self.controller.commit_attack(unit, target)

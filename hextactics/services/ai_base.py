from abc import ABC
from typing import TYPE_CHECKING
from hextactics.services.unit import UnitHolder
if TYPE_CHECKING:
    from hextactics.services.turn import TurnController

"""コンピュータプレイヤーの思考ルーチンを実装するための抽象クラス"""
class ComputerPlayerABC(ABC):
    """コンピュータプレイヤーの抽象クラス

    TurnController が自分の手番の間、1ティックに1回 step() を呼ぶ。
    step() はブロックせずにすぐ戻ること。手番を終えるときに True を返す。
    """
    def __init__(self, controller: 'TurnController', player: int):
        self.name = "CPU"
        self.controller: TurnController = controller
        self.player = player
        self.steps: int = 0

    def my_units(self) -> list[UnitHolder]:
        return [u for u in self.controller.units if u.player == self.player]

    def enemies(self) -> list[UnitHolder]:
        return [u for u in self.controller.units if u.player != self.player]

    def step(self) -> bool:
        self.steps += 1
        return self.think()

    def think(self) -> bool:
        """1ティック分の思考。基底クラスは何もせずに手番を渡す。"""
        return True

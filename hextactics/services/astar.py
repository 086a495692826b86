"""
有界A*探索。

startから出発し、max_steps歩以内でgoalからslack以内のタイルに到達する最短経路を返す。
slack=0 なら goal そのものへの移動、slack=射程 なら「攻撃範囲まで近づく」移動になる。

- 辺コストは1、ヒューリスティックはヘックス距離（一様コストのグリッドでは許容的かつ単調）。
- 同じf値のノードは Position の (x, y) 順で小さい方から展開する。
- closedになったノードは再オープンしない。単調なヒューリスティックでは最適性を損なわない。
- 見つからなければ空リストを返す（例外ではない）。
"""
import heapq
from typing import Literal, TYPE_CHECKING
from hextactics.schemas import Position
if TYPE_CHECKING:
    from hextactics.services.hexmap import HexArray

NodeState = Literal["open", "closed"]


def reconstruct_path(came_from: dict[Position, Position], final: Position) -> list[Position]:
    path = [final]
    cur = final
    while cur in came_from:
        cur = came_from[cur]
        path.append(cur)
    path.reverse()
    return path


def search(grid: 'HexArray', start: Position, goal: Position, max_steps: int, slack: int = 0) -> list[Position]:
    """
    startからgoalまでslack以内に近づく経路をA*で探索する。
    grid: distance/neighbors/is_blocked/is_occupied を持つオブジェクト（HexArray）
    max_steps: 移動できる最大歩数
    slack: ゴール判定範囲（goalからの許容距離）
    戻り値: start..終点 のPositionリスト。長さは歩数+1。見つからなければ []
    """
    if max_steps < 0 or slack < 0:
        raise ValueError(f"max_steps and slack must be >= 0 (max_steps={max_steps}, slack={slack})")
    # 歩数の上限ではなく、ゴールまでの総距離の上限になる
    budget = max_steps + slack
    g_score: dict[Position, int] = {start: 0}
    f_score: dict[Position, int] = {start: grid.distance(start, goal)}
    came_from: dict[Position, Position] = {}
    state: dict[Position, NodeState] = {start: "open"}
    open_heap: list[tuple[int, Position]] = [(f_score[start], start)]
    while open_heap:
        f, current = heapq.heappop(open_heap)
        if state.get(current) != "open" or f != f_score[current]:
            # 古いエントリ
            continue
        if grid.distance(current, goal) <= slack:
            return reconstruct_path(came_from, current)
        state[current] = "closed"
        for neighbor in grid.neighbors(current):
            if grid.is_blocked(neighbor) or grid.is_occupied(neighbor):
                continue
            if state.get(neighbor) == "closed":
                continue
            tentative = g_score[current] + 1
            if tentative > budget:
                continue
            if neighbor not in g_score or tentative < g_score[neighbor]:
                new_f = tentative + grid.distance(neighbor, goal)
                if new_f > budget:
                    continue
                came_from[neighbor] = current
                g_score[neighbor] = tentative
                f_score[neighbor] = new_f
                state[neighbor] = "open"
                heapq.heappush(open_heap, (new_f, neighbor))
    return []


def reachable(grid: 'HexArray', start: Position, speed: int) -> set[Position]:
    """
    startからspeed歩以内で移動できるタイルの集合（start自身を含む）。
    半径speedの矩形を総当たりし、各タイルについて search が経路を返すか調べる。
    """
    result: set[Position] = set()
    for y in range(start.y - speed, start.y + speed + 1):
        for x in range(start.x - speed, start.x + speed + 1):
            pos = Position(x=x, y=y)
            if grid.is_blocked(pos):
                continue
            if grid.distance(start, pos) > speed:
                continue
            if search(grid, start, pos, speed):
                result.add(pos)
    return result


from collections import deque
from typing import Iterable
from hextactics.schemas import INF, Position, TAG_PATH

def generate_connected_map(map: 'HexArray', blobs: int = 4, seed: int|None = None) -> None:
    """
    障害物のblobをランダム配置し、全ての通行可能タイルが互いに到達可能な地形を生成する。
    hexarrayの地形を書き換える。60回試して駄目なら障害物なしの地形にする。
    """
    import random
    r = random.Random(seed)
    W, H = map.W, map.H
    for _attempt in range(60):
        new_map = [[0 for _ in range(W)] for __ in range(H)]
        for _ in range(blobs):
            cx = r.randint(1, max(1, W - 2))
            cy = r.randint(1, max(1, H - 2))
            rad = r.randint(0, 1)
            for dy in range(-rad, rad + 1):
                for dx in range(-rad, rad + 1):
                    if dx * dx + dy * dy <= rad * rad:
                        x = max(0, min(W - 1, cx + dx))
                        y = max(0, min(H - 1, cy + dy))
                        new_map[y][x] = 1
        map.set_map(new_map)
        if map.validate_connectivity():
            return
    map.set_map([[0 for _ in range(W)] for __ in range(H)])

class HexArray:
    """
    ヘックスマップを2次元配列で表現するクラス（odd-r オフセット座標）。
    各セルは整数値を持ち、0は通行可能、非0は障害物を表す。
    地形に加えて、ユニットの占有とハイライト（タグ付け）を管理する。
    """
    def __init__(self, width: int, height: int):
        self.__map = [[0 for _ in range(width)] for __ in range(height)]
        self.__W = width
        self.__H = height
        self.__units: dict[Position, str] = {}
        self.__tags: dict[str, set[Position]] = {}

    def set_map(self, values: list[list[int]]):
        if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
            raise ValueError("m must be a 2D list")
        H = len(values)
        W = len(values[0]) if H > 0 else 0
        if any(len(row) != W for row in values):
            raise ValueError("All rows in m must have the same length")
        self.__map = values
        self.__W = W
        self.__H = H

    @property
    def W(self) -> int:
        return self.__W

    @property
    def H(self) -> int:
        return self.__H

    @property
    def shape(self) -> tuple[int, int]:
        return (self.W, self.H)

    def copy_as_list(self) -> list[list[int]]:
        return [row[:] for row in self.__map]

    def get(self, x:int, y:int,) -> int:
        """指定された位置のセルの値を取得する。"""
        if not (0 <= x < self.W and 0 <= y < self.H):
            raise IndexError("Coordinates out of bounds")
        return self.__map[y][x]

    def set(self, x:int, y:int, value:int) -> None:
        if not (0 <= x < self.W and 0 <= y < self.H):
            raise IndexError("Coordinates out of bounds")
        self.__map[y][x] = value

    def __getitem__(self, pos: Position) -> int:
        if not isinstance(pos, Position):
            raise TypeError(f"HexArray indices must be Position, not {type(pos).__name__}")
        if not (0 <= pos.x < self.W and 0 <= pos.y < self.H):
            raise IndexError("Coordinates out of bounds")
        return self.__map[pos.y][pos.x]

    def __setitem__(self, pos:Position, value:int ):
        """指定された位置のセルの値を設定する。"""
        if not isinstance(pos, Position):
            raise TypeError(f"pos must be Position, not {type(pos).__name__}")
        if not (0 <= pos.x < self.W and 0 <= pos.y < self.H):
            raise IndexError("Coordinates out of bounds")
        self.__map[pos.y][pos.x] = value

    # --- 距離・隣接 ---
    def distance(self, start: Position, goal: Position) -> int:
        """
        起点と目標をPositionで受け取り、ヘックス距離をintで返す。
        地形は考慮しない（A*のヒューリスティックとして使う）。
        """
        if not isinstance(start, Position) or not isinstance(goal, Position):
            raise TypeError("start/goal must be Position")
        return start.hex_distance(goal)

    def neighbors(self, pos: Position) -> list[Position]:
        """盤内の隣接タイル（最大6つ）を返す。"""
        return [npos for npos in pos.offset_neighbors() if npos.in_bounds(self.W, self.H)]

    def is_blocked(self, pos: Position) -> bool:
        """障害物または盤外ならTrue。"""
        if not pos.in_bounds(self.W, self.H):
            return True
        return self.__map[pos.y][pos.x] != 0

    # --- 占有 ---
    def is_occupied(self, pos: Position) -> bool:
        return pos in self.__units

    def occupant(self, pos: Position) -> str|None:
        return self.__units.get(pos)

    def place(self, pos: Position, unit_id: str) -> None:
        if self.is_blocked(pos):
            raise ValueError(f"cannot place {unit_id} on blocked tile {pos}")
        if pos in self.__units and self.__units[pos] != unit_id:
            raise ValueError(f"tile {pos} is already occupied by {self.__units[pos]}")
        self.__units[pos] = unit_id

    def vacate(self, pos: Position) -> None:
        self.__units.pop(pos, None)

    # --- ハイライト ---
    def highlight(self, tag: str, positions: 'Position|Iterable[Position]') -> None:
        if isinstance(positions, Position):
            positions = [positions]
        self.__tags.setdefault(tag, set()).update(positions)

    def unhighlight(self, tag: str, pos: Position) -> None:
        self.__tags.get(tag, set()).discard(pos)

    def clear_highlight(self, tag: str|None = None) -> None:
        """tag指定時はそのタグのみ、Noneなら全てのハイライトを消す。"""
        if tag is None:
            self.__tags.clear()
        else:
            self.__tags.pop(tag, None)

    def highlighted(self, tag: str) -> 'set[Position]':
        return set(self.__tags.get(tag, set()))

    def is_highlighted(self, pos: Position, tag: str) -> bool:
        return pos in self.__tags.get(tag, ())

    def highlights(self) -> dict[str, list[Position]]:
        return {tag: sorted(ps) for tag, ps in self.__tags.items() if ps}

    def gradient_field(self, goal: Position, ignore_obstacles: bool = False, stop_range: int = 0) -> list:
        """
        グラデーション波形の距離フィールドを計算して2次元リストで返す。
        goal: 目標位置
        ignore_obstacles: Trueなら障害物を無視
        stop_range: ゴール判定範囲
        """
        W = self.W
        H = self.H
        dist = [[INF for _ in range(W)] for __ in range(H)]
        def passable(pos: Position):
            if not (0 <= pos.x < W and 0 <= pos.y < H):
                return False
            if not ignore_obstacles and self.__map[pos.y][pos.x] != 0:
                return False
            return True
        gx, gy = goal.x, goal.y
        q = deque()
        R = max(0, int(stop_range))
        for y in range(max(0, gy - (R + 2)), min(H, gy + (R + 3))):
            for x in range(max(0, gx - (R + 2)), min(W, gx + (R + 3))):
                xy = Position.new(x, y)
                if goal.hex_distance(xy) <= R and passable(xy):
                    dist[y][x] = 0
                    q.append(xy)
        if not q:
            if passable(goal):
                dist[goal.y][goal.x] = 0
                q.append(goal)
            else:
                return dist
        while q:
            cp = q.popleft()
            cd = dist[cp.y][cp.x]
            for np in cp.offset_neighbors():
                if not passable(np):
                    continue
                nd = cd + 1
                if dist[np.y][np.x] > nd:
                    dist[np.y][np.x] = nd
                    q.append(np)
        return dist

    def validate_connectivity(self) -> bool:
        """
        全ての通行可能タイルが互いに到達可能か検証する。
        """
        # 通行可能な任意の一点を探す
        open_pos = None
        for y in range(self.H):
            for x in range(self.W):
                if self.__map[y][x] == 0:
                    open_pos = Position(x=x, y=y)
        if open_pos is None:
            return False
        dist = self.gradient_field(open_pos, ignore_obstacles=False, stop_range=0)
        for y in range(self.H):
            for x in range(self.W):
                if self.__map[y][x] == 0 and dist[y][x] == INF:
                    return False
        return True

    def carve(self, center: Position, radius: int) -> None:
        """centerからradius以内の障害物を取り除く（初期配置用）。"""
        for y in range(max(0, center.y - radius), min(self.H, center.y + radius + 1)):
            for x in range(max(0, center.x - radius), min(self.W, center.x + radius + 1)):
                if center.hex_distance(x, y) <= radius:
                    self.__map[y][x] = 0

    def dump(self):
        """キャラクタベースのヘックスマップをプリントする。
        奇数行をインデントして六角形グリッドの視覚的なズレを表現します。
        障害物は #、ユニットは u、パスは *、それ以外は . で表示します。
        """
        path = self.__tags.get(TAG_PATH, set())
        yy = "    "
        for x in range(self.W):
            yy += f"{x:2d}  "
        print(yy)
        for y, row in enumerate(self.__map):
            prefix = "  " if y % 2 == 1 else ""
            chars = []
            for x, cell in enumerate(row):
                pos = Position(x=x, y=y)
                if cell != 0:
                    chars.append("#")
                elif pos in self.__units:
                    chars.append("u")
                elif pos in path:
                    chars.append("*")
                else:
                    chars.append(".")
            print(f"{y:2d}: " + prefix + "   ".join(chars))

from typing import List, Optional, Literal, Dict
from pydantic import BaseModel, Field, computed_field

INF:int = 10**8

UNIT_MAX_HP = 10
UNIT_SPEED = 3
UNIT_RANGE = 1
UNIT_ATTACK = 4

MAP_W = 12
MAP_H = 10

Phase = Literal["SELECT", "MOVE", "ATTACK"]
# move: 移動待ち / attack: 攻撃待ち / wait: 行動済み
UnitStatus = Literal["move", "attack", "wait"]

# ハイライトのタグ
TAG_PATH = "Path"
TAG_SELECTION = "Selection"
TAG_SELECTABLE = "Selectable"
TAG_ATTACK = "Attack"
TAG_CURSOR = "Cursor"
TAG_MOVABLE = "Movable"

class Position(BaseModel,frozen=True):

    x: int
    y: int

    def __le__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.x, self.y) <= (other.x, other.y)

    def __gt__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.x, self.y) > (other.x, other.y)

    def __ge__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.x, self.y) >= (other.x, other.y)
    def __lt__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.x, self.y) < (other.x, other.y)

    def __hash__(self):
        return hash((self.x, self.y))

    def __eq__(self, other):
        if isinstance(other, Position):
            return self.x == other.x and self.y == other.y
        return False

    def __repr__(self) -> str:
        return f"Position({self.x},{self.y})"

    @staticmethod
    def invalid() -> 'Position':
        return Position(x=-1, y=-1)

    def is_valid(self) -> bool:
        return self.x>=0 and self.y>=0

    @staticmethod
    def new(p1:'int|tuple[int,int]|Position', p2:int|None=None) -> 'Position':
        if isinstance(p1, Position):
            return Position(x=p1.x, y=p1.y)
        elif isinstance(p1, (tuple, list)) and len(p1) == 2:
            return Position(x=p1[0], y=p1[1])
        elif isinstance(p1, int) and isinstance(p2, int):
            return Position(x=p1, y=p2)
        else:
            raise TypeError(f"invalid parameters to Position.new {p1}, {p2}")


    def in_bounds(self, w: int, h: int) -> bool:
        return 0 <= self.x < w and 0 <= self.y < h


    def hex_distance(self, p1:'int|tuple[int,int]|Position', p2:int|None=None) -> int:
        if isinstance(p1, Position):
            x,y = p1.x, p1.y
        elif isinstance(p1, (tuple, list)) and len(p1) == 2:
            x,y = p1
        elif isinstance(p1, int) and isinstance(p2, int):
            x,y = p1,p2
        else:
            raise TypeError("Other must be a Position")
        aq, ar = Position._offset_to_axial(self.x, self.y)
        bq, br = Position._offset_to_axial(x, y)
        ax, ay, az = Position._axial_to_cube(aq, ar)
        bx, by, bz = Position._axial_to_cube(bq, br)
        return Position._cube_distance(ax, ay, az, bx, by, bz)

    @staticmethod
    def _offset_to_axial(col: int, row: int):
        q = col - ((row - (row & 1)) >> 1)
        r = row
        return q, r

    @staticmethod
    def _axial_to_cube(q: int, r: int):
        x = q
        z = r
        y = -x - z
        return x, y, z

    @staticmethod
    def _cube_distance(ax: int, ay: int, az: int, bx: int, by: int, bz: int):
        return max(abs(ax - bx), abs(ay - by), abs(az - bz))

    def offset_neighbors(self):
        odd = self.y & 1
        if odd:
            deltas = [(+1, 0), (+1, -1), (0, -1), (-1, 0), (0, +1), (+1, +1)]
        else:
            deltas = [(+1, 0), (0, -1), (-1, -1), (-1, 0), (-1, +1), (0, +1)]
        for dx, dy in deltas:
            yield Position(x=self.x + dx, y=self.y + dy)


class UnitState(BaseModel):
    id: str
    player: int
    pos: Position
    hp: int = UNIT_MAX_HP
    max_hp: int = UNIT_MAX_HP
    speed: int = UNIT_SPEED
    range: int = UNIT_RANGE
    attack: int = UNIT_ATTACK
    status: UnitStatus = "move"

    def is_active(self) -> bool:
        return self.hp > 0 and self.pos.is_valid()

    def hex_distance(self, other:'UnitState|Position') -> int:
        if self.is_active():
            if isinstance(other, Position) and other.is_valid():
                return self.pos.hex_distance(other)
            elif isinstance(other, UnitState) and other.is_active():
                return self.pos.hex_distance(other.pos)
        return INF

    def can_attack(self, other:'UnitState', pos:Position|None = None) -> bool:
        """posに立った場合にotherを攻撃できるか（敵かつ射程内）。"""
        if other.player == self.player or not other.is_active():
            return False
        origin = pos if pos is not None else self.pos
        return origin.hex_distance(other.pos) <= self.range

    # Flattened coordinates for client convenience (read-only, derived from pos)
    @computed_field  # type: ignore[misc]
    @property
    def x(self) -> Optional[int]:
        return self.pos.x if self.pos.is_valid() else None

    @computed_field  # type: ignore[misc]
    @property
    def y(self) -> Optional[int]:
        return self.pos.y if self.pos.is_valid() else None


MatchMode = Literal["pve", "pvp"]
MatchStatus = Literal["active", "over"]


class Config(BaseModel):
    mode: MatchMode = "pvp"
    players: int = Field(default=2, ge=2, le=4)
    map_w: int = Field(default=MAP_W, ge=4)
    map_h: int = Field(default=MAP_H, ge=4)
    blobs: int = Field(default=4, ge=0)
    units_per_side: int = Field(default=3, ge=1)
    seed: Optional[int] = None


class MatchCreateRequest(BaseModel):
    config: Optional[Config] = None
    display_name: Optional[str] = None


class MatchCreateResponse(BaseModel):
    match_id: str
    status: MatchStatus = "active"
    mode: MatchMode = "pvp"
    config: Optional[Config] = None
    map: List[List[int]] = []


class PointerRequest(BaseModel):
    # None はカーソルが盤外
    pos: Optional[Position] = None


class TickRequest(BaseModel):
    frames: int = Field(default=1, ge=1, le=1000)


class MatchStateResponse(BaseModel):
    match_id: str
    status: MatchStatus
    turn: int
    player: int
    phase: Phase
    waiting: bool = False
    computer: bool = False
    game_over: bool = False
    winner: Optional[int] = None
    selection: Optional[Position] = None
    path: List[Position] = []
    units: List[UnitState] = []
    highlights: Dict[str, List[Position]] = {}
    logs: List[str] = []

    def dump(self):
        yield f"match: {self.match_id} turn: {self.turn} player: {self.player} phase: {self.phase}"
        if self.game_over:
            yield f"  game over: winner {self.winner}"
        for unit in self.units:
            yield f"  unit: {unit.id} p{unit.player} pos: ({unit.pos.x},{unit.pos.y}) hp: {unit.hp} {unit.status}"
        for log in self.logs:
            yield f"  log: {log}"

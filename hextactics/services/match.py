import random
import time
import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Optional

from hextactics.schemas import (
    Config,
    MatchCreateRequest,
    MatchCreateResponse,
    MatchMode,
    MatchStateResponse,
    MatchStatus,
    Position,
    UnitState,
)
from hextactics.services.ai_cpu import ComputerPlayerGreedy
from hextactics.services.hexmap import HexArray, generate_connected_map
from hextactics.services.turn import TurnController
from hextactics.services.unit import UnitHolder
from hextactics.utils.audit import dbg

# CPUが担当するプレイヤー（pveモード）
COMPUTER_PLAYER = 1


@dataclass
class Match:
    match_id: str
    mode: MatchMode
    board: TurnController
    config: Config
    created_at: int = field(default_factory=lambda: int(time.time()))
    display_name: Optional[str] = None
    lock: Lock = field(default_factory=Lock, repr=False)
    frames: int = 0

    @property
    def status(self) -> MatchStatus:
        return "over" if self.board.game_over else "active"

    def tick(self, frames: int = 1) -> None:
        """frames分ゲームを進める。各フレームで移動再生を1歩進めてから手番処理を行う。"""
        for _ in range(frames):
            for u in self.board.units_list:
                u.update()
            self.board.tick()
            self.frames += 1

    def build_state_payload(self) -> MatchStateResponse:
        b = self.board
        return MatchStateResponse(
            match_id=self.match_id,
            status=self.status,
            turn=b.turn,
            player=b.player,
            phase=b.phase,
            waiting=b.waiting,
            computer=b.is_computer(),
            game_over=b.game_over,
            winner=b.winner,
            selection=b.selection,
            path=b.path,
            units=[u.unit.model_copy() for u in b.units_list],
            highlights=b.hexmap.highlights(),
            logs=list(b.logs[-20:]),
        )


class MatchStore:
    def __init__(self) -> None:
        self._matches: Dict[str, Match] = {}

    def create(self, req: MatchCreateRequest) -> MatchCreateResponse:
        config = req.config or Config()
        mid = str(uuid.uuid4())
        rng = random.Random(config.seed)
        W, H = config.map_w, config.map_h
        hexmap = HexArray(W, H)
        generate_connected_map(hexmap, blobs=config.blobs, seed=config.seed)
        spawns = spawn_points(W, H, config.players)
        units: list[UnitHolder] = []
        for player, (sx, sy) in enumerate(spawns):
            center = Position(x=sx, y=sy)
            # 初期配置の周囲は障害物を取り除く
            hexmap.carve(center, 1)
            for state in create_units(player, center, config.units_per_side, hexmap):
                units.append(UnitHolder(state, hexmap, rng=rng))
        board = TurnController(hexmap, units, config.players, log_id=mid)
        m = Match(match_id=mid, mode=config.mode, board=board, config=config, display_name=req.display_name)
        if config.mode == "pve":
            board.attach_computer(ComputerPlayerGreedy(board, COMPUTER_PLAYER))
        self._matches[mid] = m
        dbg(mid, f"[MatchStore] created {mid} mode={config.mode} players={config.players}")
        return MatchCreateResponse(
            match_id=mid,
            status=m.status,
            mode=m.mode,
            config=config,
            map=hexmap.copy_as_list(),
        )

    def get(self, match_id: str) -> Match:
        return self._matches[match_id]

    def delete(self, match_id: str) -> None:
        del self._matches[match_id]

    def state(self, match_id: str) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            return m.build_state_payload()

    def tick(self, match_id: str, frames: int = 1) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.tick(frames)
            return m.build_state_payload()

    def pointer(self, match_id: str, pos: Position | None) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_pointer(pos)
            return m.build_state_payload()

    def primary(self, match_id: str, pos: Position | None) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_primary_command(pos)
            return m.build_state_payload()

    def secondary(self, match_id: str) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_secondary_command()
            return m.build_state_payload()

    def end_turn(self, match_id: str) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_end_turn_command()
            return m.build_state_payload()

    def skip_attack(self, match_id: str) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_skip_attack_command()
            return m.build_state_payload()

    def cancel_move(self, match_id: str) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_cancel_move_command()
            return m.build_state_payload()

    def action_completed(self, match_id: str) -> MatchStateResponse:
        m = self.get(match_id)
        with m.lock:
            m.board.on_action_completed()
            return m.build_state_payload()


store = MatchStore()

# ---------- Internal helpers ----------
def spawn_points(W: int, H: int, players: int) -> list[tuple[int, int]]:
    """プレイヤーごとの初期配置の中心。2人なら左上と右下、それ以上は四隅を順に使う。"""
    corners = [(1, 1), (W - 2, H - 2), (W - 2, 1), (1, H - 2)]
    if players > len(corners):
        raise ValueError(f"at most {len(corners)} players are supported")
    return corners[:players]


def create_units(player: int, center: Position, count: int, hexmap: HexArray) -> list[UnitState]:
    """centerの近くの空きタイルにcount体のユニットを並べる。"""
    un: list[UnitState] = []
    taken: set[Position] = set()
    ring = [center] + sorted(
        (p for p in _positions_around(center, 3, hexmap) if p != center),
        key=lambda p: (center.hex_distance(p), p),
    )
    for pos in ring:
        if len(un) >= count:
            break
        if hexmap.is_blocked(pos) or hexmap.is_occupied(pos) or pos in taken:
            continue
        taken.add(pos)
        un.append(UnitState(id=f"P{player}U{len(un)+1}", player=player, pos=pos))
    if len(un) < count:
        raise ValueError(f"not enough room to place {count} units for player {player}")
    return un


def _positions_around(center: Position, radius: int, hexmap: HexArray):
    for y in range(center.y - radius, center.y + radius + 1):
        for x in range(center.x - radius, center.x + radius + 1):
            pos = Position(x=x, y=y)
            if pos.in_bounds(hexmap.W, hexmap.H) and center.hex_distance(pos) <= radius:
                yield pos

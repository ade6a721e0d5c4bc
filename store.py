import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from tournament import Match, NotFound, Player, TournamentSettings

logger = logging.getLogger(__name__)

SCHEMA = (
    """CREATE TABLE IF NOT EXISTS tournaments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT,
        created_at TEXT,
        data TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        tournament_id INTEGER,
        data TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        tournament_id INTEGER,
        data TEXT
    )""",
)


class Store:
    """Tournaments, players and matches, each row holding its record as JSON."""

    def __init__(self, path: str):
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        self.init_db()

    def init_db(self) -> None:
        with self.transaction():
            for stmt in SCHEMA:
                self._conn.execute(stmt)

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self):
        """Run several operations as one unit: a single commit, or a rollback."""
        with self._lock:
            self._depth += 1
            try:
                yield self
            except Exception:
                self._depth -= 1
                if self._depth == 0:
                    self._conn.rollback()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self._conn.commit()

    def _execute(self, sql: str, params=()):
        with self.transaction():
            return self._conn.execute(sql, params)

    # -- tournaments --

    def create_tournament(self, name: str, settings: TournamentSettings, phase: str) -> int:
        data = {'settings': settings.to_dict(), 'phase': phase, 'status': 'active'}
        cur = self._execute(
            "INSERT INTO tournaments (name, created_at, data) VALUES (?, ?, ?)",
            (name, datetime.now(timezone.utc).isoformat(timespec='seconds'), json.dumps(data)),
        )
        return cur.lastrowid

    def _tournament_row(self, tournament_id: int):
        row = self._execute("SELECT id, name, created_at, data FROM tournaments WHERE id=?",
                            (tournament_id,)).fetchone()
        if row is None:
            raise NotFound(f"tournament {tournament_id} not found")
        return row

    def load_tournament(self, tournament_id: int) -> Dict:
        row = self._tournament_row(tournament_id)
        data = json.loads(row['data'])
        return {
            'id': row['id'],
            'name': row['name'],
            'created_at': row['created_at'],
            'phase': data.get('phase'),
            'status': data.get('status'),
            'settings': data.get('settings', {}),
        }

    def list_tournaments(self) -> List[Dict]:
        rows = self._execute("SELECT id FROM tournaments ORDER BY id DESC").fetchall()
        return [self.load_tournament(r['id']) for r in rows]

    def load_tournament_settings(self, tournament_id: int) -> TournamentSettings:
        return TournamentSettings.from_dict(self.load_tournament(tournament_id)['settings'])

    def update_tournament_phase(self, tournament_id: int, phase: str, status: str) -> None:
        row = self._tournament_row(tournament_id)
        data = json.loads(row['data'])
        data['phase'] = phase
        data['status'] = status
        self._execute("UPDATE tournaments SET data=? WHERE id=?", (json.dumps(data), tournament_id))

    def delete_tournament(self, tournament_id: int) -> None:
        with self.transaction():
            self._tournament_row(tournament_id)
            for table in ('matches', 'players'):
                self._conn.execute(f"DELETE FROM {table} WHERE tournament_id=?", (tournament_id,))
            self._conn.execute("DELETE FROM tournaments WHERE id=?", (tournament_id,))

    # -- players --

    def insert_players(self, players: Iterable[Player]) -> None:
        with self.transaction():
            for p in players:
                self._conn.execute(
                    "INSERT INTO players (id, tournament_id, data) VALUES (?, ?, ?)",
                    (p.id, p.tournament_id, json.dumps(p.to_dict())),
                )

    def load_players(self, tournament_id: int) -> List[Player]:
        rows = self._execute("SELECT data FROM players WHERE tournament_id=?", (tournament_id,)).fetchall()
        players = [Player.from_dict(json.loads(r['data'])) for r in rows]
        return sorted(players, key=lambda p: (p.seed is None, p.seed or 0))

    def load_player(self, player_id: str) -> Player:
        row = self._execute("SELECT data FROM players WHERE id=?", (player_id,)).fetchone()
        if row is None:
            raise NotFound(f"player {player_id} not found")
        return Player.from_dict(json.loads(row['data']))

    def update_player(self, player_id: str, fields: Dict) -> Player:
        with self.transaction():
            data = self.load_player(player_id).to_dict()
            data.update(fields)
            self._conn.execute("UPDATE players SET data=? WHERE id=?", (json.dumps(data), player_id))
        return Player.from_dict(data)

    # -- matches --

    def insert_matches(self, matches: Iterable[Match]) -> None:
        with self.transaction():
            for m in matches:
                self._conn.execute(
                    "INSERT INTO matches (id, tournament_id, data) VALUES (?, ?, ?)",
                    (m.id, m.tournament_id, json.dumps(m.to_dict())),
                )

    def load_matches(self, tournament_id: int) -> List[Match]:
        rows = self._execute("SELECT data FROM matches WHERE tournament_id=?", (tournament_id,)).fetchall()
        matches = [Match.from_dict(json.loads(r['data'])) for r in rows]
        return sorted(matches, key=lambda m: (m.stage, m.group_name or '', m.round, m.match_number))

    def load_match(self, match_id: str) -> Match:
        row = self._execute("SELECT data FROM matches WHERE id=?", (match_id,)).fetchone()
        if row is None:
            raise NotFound(f"match {match_id} not found")
        return Match.from_dict(json.loads(row['data']))

    def update_match(self, match_id: str, fields: Dict) -> Match:
        with self.transaction():
            data = self.load_match(match_id).to_dict()
            data.update(fields)
            self._conn.execute("UPDATE matches SET data=? WHERE id=?", (json.dumps(data), match_id))
        return Match.from_dict(data)


_stores: Dict[str, Store] = {}


def get_store(path: str) -> Store:
    store = _stores.get(path)
    if store is None:
        store = _stores[path] = Store(path)
        logger.info("opened tournament database %s", path)
    return store


def close_stores(path: Optional[str] = None) -> None:
    for key in [path] if path else list(_stores):
        store = _stores.pop(key, None)
        if store is not None:
            store.close()

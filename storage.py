import logging
import threading
from collections import Counter
from datetime import datetime, timezone

from flask_login import UserMixin

from game import copy_board

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin):
    def __init__(self, id, email=None, first_name=None, last_name=None, profile_image_url=None, password_hash=None):
        self.id = id
        self.password_hash = password_hash
        self.email = email
        self.first_name = first_name
        self.last_name = last_name
        self.profile_image_url = profile_image_url
        self.created_at = _now()
        self.updated_at = self.created_at

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "profileImageUrl": self.profile_image_url,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Puzzle:
    def __init__(self, id, initial_board, solved_board, difficulty_level):
        self.id = id
        self.initial_board = initial_board
        self.solved_board = solved_board
        self.difficulty_level = difficulty_level
        self.created_at = _now()

    def to_dict(self):
        return {
            "id": self.id,
            "initialBoard": self.initial_board,
            "solvedBoard": self.solved_board,
            "difficultyLevel": self.difficulty_level,
            "createdAt": _iso(self.created_at),
        }


class Game:
    def __init__(self, id, user_id, puzzle_id, current_board, started_at=None):
        self.id = id
        self.user_id = user_id
        self.puzzle_id = puzzle_id
        self.current_board = current_board
        self.is_completed = False
        self.time_spent = 0
        self.started_at = started_at or _now()
        self.completed_at = None
        self.created_at = _now()
        self.updated_at = self.created_at

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "puzzleId": self.puzzle_id,
            "currentBoard": self.current_board,
            "isCompleted": self.is_completed,
            "timeSpent": self.time_spent,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class SharedPuzzle:
    def __init__(self, id, sender_id, receiver_id, puzzle_id, message=None):
        self.id = id
        self.sender_id = sender_id
        self.receiver_id = receiver_id
        self.puzzle_id = puzzle_id
        self.message = message
        self.is_played = False
        self.shared_at = _now()

    def to_dict(self):
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "puzzleId": self.puzzle_id,
            "message": self.message,
            "isPlayed": self.is_played,
            "sharedAt": _iso(self.shared_at),
        }


class MemoryStorage:
    """Process-wide store for users, puzzles, games, friendships and shares.

    Every public method takes the lock, so concurrent requests see whole
    records. Records handed out are the stored objects; callers mutate them
    only through ``update_game`` and ``mark_shared_puzzle_played``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        with self._lock:
            self.users = {}
            self.puzzles = {}
            self.games = {}
            self.shared_puzzles = {}
            self.friends = set()
            self._ids = Counter()

    def _next_id(self, table):
        self._ids[table] += 1
        return self._ids[table]

    # Users

    def get_user(self, user_id):
        with self._lock:
            return self.users.get(user_id)

    def upsert_user(self, user_id, **fields):
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                user = User(user_id, **fields)
                self.users[user_id] = user
                logger.info("Created user %s", user_id)
            else:
                for key, value in fields.items():
                    if value is not None:
                        setattr(user, key, value)
                user.updated_at = _now()
            return user

    # Puzzles

    def get_puzzle(self, puzzle_id):
        with self._lock:
            return self.puzzles.get(puzzle_id)

    def get_puzzles_by_difficulty(self, level):
        with self._lock:
            return [p for p in self.puzzles.values() if p.difficulty_level == level]

    def create_puzzle(self, initial_board, solved_board, difficulty_level):
        with self._lock:
            puzzle = Puzzle(self._next_id("puzzles"), initial_board, solved_board, difficulty_level)
            self.puzzles[puzzle.id] = puzzle
            return puzzle

    # Games

    def get_game(self, game_id):
        with self._lock:
            return self.games.get(game_id)

    def get_active_game(self, user_id):
        with self._lock:
            active = [g for g in self.games.values() if g.user_id == user_id and not g.is_completed]
            if not active:
                return None
            return max(active, key=lambda g: (g.started_at, g.id))

    def get_games_by_user(self, user_id, start_date=None, end_date=None, difficulty_range=None, status="all"):
        with self._lock:
            games = []
            for game in self.games.values():
                if game.user_id != user_id:
                    continue
                if start_date and game.started_at < start_date:
                    continue
                if end_date and game.started_at > end_date:
                    continue
                if difficulty_range:
                    level = self.puzzles[game.puzzle_id].difficulty_level
                    if not difficulty_range[0] <= level <= difficulty_range[1]:
                        continue
                if status != "all" and game.is_completed != (status == "completed"):
                    continue
                games.append(game)
            return sorted(games, key=lambda g: (g.started_at, g.id), reverse=True)

    def create_game(self, user_id, puzzle):
        with self._lock:
            game = Game(self._next_id("games"), user_id, puzzle.id, copy_board(puzzle.initial_board))
            self.games[game.id] = game
            return game

    def update_game(self, game_id, current_board, is_completed=None, time_spent=None, completed_at=None):
        with self._lock:
            game = self.games[game_id]
            game.current_board = current_board
            if is_completed is not None:
                game.is_completed = is_completed
            if time_spent is not None:
                game.time_spent = time_spent
            if not game.is_completed:
                game.completed_at = None
            elif completed_at is not None:
                game.completed_at = completed_at
            elif game.completed_at is None:
                game.completed_at = _now()
            game.updated_at = _now()
            return game

    # Shared puzzles

    def get_shared_puzzles_for(self, receiver_id):
        with self._lock:
            shared = [s for s in self.shared_puzzles.values() if s.receiver_id == receiver_id]
            shared.sort(key=lambda s: (s.shared_at, s.id), reverse=True)
            return [(s, self.puzzles[s.puzzle_id], self.users[s.sender_id]) for s in shared]

    def get_shared_puzzle(self, shared_id):
        with self._lock:
            return self.shared_puzzles.get(shared_id)

    def create_shared_puzzle(self, sender_id, receiver_id, puzzle_id, message=None):
        with self._lock:
            shared = SharedPuzzle(self._next_id("shared_puzzles"), sender_id, receiver_id, puzzle_id, message)
            self.shared_puzzles[shared.id] = shared
            return shared

    def mark_shared_puzzle_played(self, shared_id):
        with self._lock:
            shared = self.shared_puzzles[shared_id]
            shared.is_played = True
            return shared

    # Friends

    def get_friends(self, user_id):
        with self._lock:
            return sorted(
                (self.users[f] for u, f in self.friends if u == user_id and f in self.users),
                key=lambda user: user.id,
            )

    def add_friend(self, user_id, friend_id):
        with self._lock:
            self.friends.add((user_id, friend_id))

    def remove_friend(self, user_id, friend_id):
        with self._lock:
            self.friends.discard((user_id, friend_id))

    # Stats

    def get_user_stats(self, user_id):
        with self._lock:
            games = [g for g in self.games.values() if g.user_id == user_id]
            completed = [g for g in games if g.is_completed]
            times = [g.time_spent for g in completed]
            levels = Counter(self.puzzles[g.puzzle_id].difficulty_level for g in completed)

            most_completed = None
            if levels:
                level, count = levels.most_common(1)[0]
                most_completed = {"level": level, "count": count}

            return {
                "totalGames": len(games),
                "completedGames": len(completed),
                "inProgressGames": len(games) - len(completed),
                "averageCompletionTime": sum(times) / len(times) if times else None,
                "fastestCompletionTime": min(times) if times else None,
                "mostCompletedLevel": most_completed,
            }


storage = MemoryStorage()

import os
import random
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_login import LoginManager, current_user, login_required, login_user, logout_user
from flask_socketio import SocketIO, join_room
import humanize
from pydantic import ValidationError
from werkzeug.security import check_password_hash, generate_password_hash

import game as engine
from schemas import (
    AddFriendBody,
    CheckBoardBody,
    CreateGameBody,
    LoginBody,
    SharePuzzleBody,
    UpdateGameBody,
)
from storage import storage

load_dotenv()

app = Flask(__name__)
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY') or "change_this_secret_key"
app.config['PUZZLE_POOL_SIZE'] = int(os.getenv('PUZZLE_POOL_SIZE', 1))
app.config['CORS_ORIGINS'] = os.getenv('CORS_ORIGINS', '*')

CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
socketio = SocketIO(app, cors_allowed_origins=app.config['CORS_ORIGINS'])

login_manager = LoginManager()
login_manager.init_app(app)

PERIODS = {
    'week': timedelta(days=7),
    'month': timedelta(days=30),
    'year': timedelta(days=365),
}
STATUSES = ('completed', 'in-progress', 'all')


@login_manager.user_loader
def load_user(user_id):
    return storage.get_user(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Unauthorized"}), 401


def _validation_error(message, exc):
    errors = [{"loc": list(err["loc"]), "message": err["msg"]} for err in exc.errors()]
    return jsonify({"error": message, "errors": errors}), 400


def _game_with_puzzle(game):
    puzzle = storage.get_puzzle(game.puzzle_id)
    return {**game.to_dict(), "puzzle": puzzle.to_dict()}


def _relative(value, now):
    return humanize.naturaltime(now - value) if value else None


def _owned_game(game_id):
    game = storage.get_game(game_id)
    if not game:
        return None, (jsonify({"error": "Game not found"}), 404)
    if game.user_id != current_user.id:
        return None, (jsonify({"error": "You don't have permission to access this game"}), 403)
    return game, None


def _pick_puzzle(level):
    puzzles = storage.get_puzzles_by_difficulty(level)
    if len(puzzles) < app.config['PUZZLE_POOL_SIZE']:
        initial_board, solved_board = engine.generate(level)
        return storage.create_puzzle(initial_board, solved_board, level)
    return random.choice(puzzles)


@app.route("/")
def index():
    return "Sudoku backend is running!"


# AUTH

@app.route("/api/login", methods=['POST'])
def login():
    try:
        body = LoginBody.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error("Invalid login data", e)

    fields = {}
    existing = storage.get_user(body.id)
    if existing is None:
        fields["password_hash"] = generate_password_hash(body.password)
    elif not check_password_hash(existing.password_hash, body.password):
        return jsonify({"error": "Invalid credentials"}), 401

    user = storage.upsert_user(
        body.id,
        **fields,
        email=body.email,
        first_name=body.firstName,
        last_name=body.lastName,
        profile_image_url=body.profileImageUrl,
    )
    login_user(user)
    return jsonify(user.to_dict())


@app.route("/api/logout", methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@app.route("/api/auth/user")
@login_required
def auth_user():
    return jsonify(current_user.to_dict())


# GAMES

@app.route("/api/games", methods=['POST'])
@login_required
def create_game():
    try:
        body = CreateGameBody.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error("Invalid difficulty level", e)

    try:
        puzzle = _pick_puzzle(body.difficultyLevel)
        game = storage.create_game(current_user.id, puzzle)
        return jsonify({**game.to_dict(), "puzzle": puzzle.to_dict()}), 201
    except Exception as e:
        app.logger.exception("Error creating game")
        return jsonify({"error": str(e)}), 500


@app.route("/api/games/active")
@login_required
def active_game():
    game = storage.get_active_game(current_user.id)
    if not game:
        return jsonify({"error": "No active game found"}), 404
    return jsonify(_game_with_puzzle(game))


@app.route("/api/games")
@login_required
def game_history():
    period = request.args.get('period', 'all')
    difficulty = request.args.get('difficulty', 'all')
    status = request.args.get('status', 'all')

    filters = {}
    if period != 'all':
        if period not in PERIODS:
            return jsonify({"error": "Invalid period parameter"}), 400
        now = datetime.now(timezone.utc)
        filters['start_date'] = now - PERIODS[period]
        filters['end_date'] = now

    if difficulty != 'all':
        if difficulty not in engine.DIFFICULTY_RANGES:
            return jsonify({"error": "Invalid difficulty parameter"}), 400
        filters['difficulty_range'] = engine.DIFFICULTY_RANGES[difficulty]

    if status not in STATUSES:
        return jsonify({"error": "Invalid status parameter"}), 400
    filters['status'] = status

    try:
        now = datetime.now(timezone.utc)
        history = []
        for game in storage.get_games_by_user(current_user.id, **filters):
            entry = _game_with_puzzle(game)
            entry['timeSpentFormatted'] = engine.format_time(game.time_spent)
            entry['difficultyLabel'] = engine.difficulty_label(entry['puzzle']['difficultyLevel'])
            entry["startedAtRelative"] = _relative(game.started_at, now)
            entry["completedAtRelative"] = _relative(game.completed_at, now)
            history.append(entry)
        return jsonify(history)
    except Exception as e:
        app.logger.exception("Error fetching games")
        return jsonify({"error": str(e)}), 500


@app.route("/api/games/<int:game_id>")
@login_required
def get_game(game_id):
    game, error = _owned_game(game_id)
    if error:
        return error
    return jsonify(_game_with_puzzle(game))


@app.route("/api/games/<int:game_id>", methods=['PATCH'])
@login_required
def update_game(game_id):
    game, error = _owned_game(game_id)
    if error:
        return error

    try:
        body = UpdateGameBody.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error("Invalid game data", e)

    if body.isCompleted:
        puzzle = storage.get_puzzle(game.puzzle_id)
        if not engine.is_board_complete(body.currentBoard) or not engine.is_solution_correct(body.currentBoard, puzzle.solved_board):
            return jsonify({"error": "Board is not solved"}), 400

    try:
        app.logger.debug("Updating game %s", game_id)
        updated = storage.update_game(
            game_id,
            body.currentBoard,
            is_completed=body.isCompleted,
            time_spent=body.timeSpent,
            completed_at=body.completedAt,
        )
        return jsonify(_game_with_puzzle(updated))
    except Exception as e:
        app.logger.exception("Error updating game")
        return jsonify({"error": str(e)}), 500


@app.route("/api/games/<int:game_id>/check", methods=['POST'])
@login_required
def check_game(game_id):
    game, error = _owned_game(game_id)
    if error:
        return error

    try:
        body = CheckBoardBody.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error("Invalid board", e)

    board = body.currentBoard if body.currentBoard is not None else game.current_board
    puzzle = storage.get_puzzle(game.puzzle_id)
    return jsonify({
        "valid": engine.is_valid_board(board),
        "complete": engine.is_board_complete(board),
        "correct": engine.is_solution_correct(board, puzzle.solved_board),
    })


# STATS

@app.route("/api/stats")
@login_required
def stats():
    try:
        return jsonify(storage.get_user_stats(current_user.id))
    except Exception as e:
        app.logger.exception("Error fetching stats")
        return jsonify({"error": str(e)}), 500


# FRIENDS

@app.route("/api/friends")
@login_required
def list_friends():
    return jsonify([friend.to_dict() for friend in storage.get_friends(current_user.id)])


@app.route("/api/friends", methods=['POST'])
@login_required
def add_friend():
    try:
        body = AddFriendBody.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error("Friend ID is required", e)

    if body.friendId == current_user.id:
        return jsonify({"error": "Cannot add yourself as a friend"}), 400
    if not storage.get_user(body.friendId):
        return jsonify({"error": "User not found"}), 404

    storage.add_friend(current_user.id, body.friendId)
    storage.add_friend(body.friendId, current_user.id)
    return jsonify({"message": "Friend added successfully"}), 201


@app.route("/api/friends/<friend_id>", methods=['DELETE'])
@login_required
def remove_friend(friend_id):
    storage.remove_friend(current_user.id, friend_id)
    storage.remove_friend(friend_id, current_user.id)
    return jsonify({"message": "Friend removed successfully"})


# SHARED PUZZLES

@app.route("/api/shared-puzzles")
@login_required
def list_shared_puzzles():
    return jsonify([
        {**shared.to_dict(), "puzzle": puzzle.to_dict(), "sender": sender.to_dict()}
        for shared, puzzle, sender in storage.get_shared_puzzles_for(current_user.id)
    ])


@app.route("/api/shared-puzzles", methods=['POST'])
@login_required
def share_puzzle():
    try:
        body = SharePuzzleBody.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error("Invalid shared puzzle data", e)

    if not storage.get_puzzle(body.puzzleId):
        return jsonify({"error": "Puzzle not found"}), 404
    if not storage.get_user(body.receiverId):
        return jsonify({"error": "Receiver not found"}), 404

    shared = storage.create_shared_puzzle(current_user.id, body.receiverId, body.puzzleId, body.message)
    socketio.emit('puzzle_shared', {
        "shared_puzzle": shared.to_dict(),
        "sender": current_user.to_dict(),
    }, to=_user_room(body.receiverId))
    return jsonify(shared.to_dict()), 201


@app.route("/api/shared-puzzles/<int:shared_id>/play", methods=['POST'])
@login_required
def play_shared_puzzle(shared_id):
    shared = storage.get_shared_puzzle(shared_id)
    if not shared:
        return jsonify({"error": "Shared puzzle not found"}), 404
    if shared.receiver_id != current_user.id:
        return jsonify({"error": "You don't have permission to play this shared puzzle"}), 403

    puzzle = storage.get_puzzle(shared.puzzle_id)
    if not puzzle:
        return jsonify({"error": "Puzzle not found"}), 404

    game = storage.create_game(current_user.id, puzzle)
    storage.mark_shared_puzzle_played(shared_id)
    return jsonify({**game.to_dict(), "puzzle": puzzle.to_dict()}), 201


# REALTIME

def _user_room(user_id):
    return f"user:{user_id}"


@socketio.on('join')
def on_join(data):
    if not isinstance(data, dict):
        return
    user_id = data.get('user_id')
    if not user_id or not storage.get_user(user_id):
        return
    join_room(_user_room(user_id))


import logging
import random
from collections import namedtuple

logger = logging.getLogger(__name__)

SIZE = 9
BOX = 3
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10

DIFFICULTY_RANGES = {
    'easy': (1, 3),
    'medium': (4, 7),
    'hard': (8, 10),
}

GeneratedPuzzle = namedtuple('GeneratedPuzzle', ['initial_board', 'solved_board'])


def empty_board():
    return [[None for _ in range(SIZE)] for _ in range(SIZE)]


def copy_board(board):
    return [row[:] for row in board]


def box_index(row, col):
    return (row // BOX) * BOX + col // BOX


def cells_to_remove(difficulty):
    """Number of cells to clear for a difficulty level between 1 and 10."""
    if difficulty <= 3:
        return 30 + (difficulty - 1) * 5
    elif difficulty <= 7:
        return 40 + (difficulty - 3) * 5
    return 55 + (difficulty - 7) * 5


class SudokuGenerator:
    """Builds a solved board and carves a uniquely solvable puzzle out of it.

    An instance keeps no state between calls, each operation works on the
    board handed to it (or a copy of it).
    """

    def __init__(self, rng=None):
        self.rng = rng or random.Random()

    def generate(self, difficulty):
        if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
            raise ValueError(f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {difficulty}")

        solution = empty_board()
        self.fill_board(solution)
        puzzle = self.remove_cells(solution, difficulty)

        logger.debug(
            "Generated puzzle at difficulty %s with %s empty cells (target %s)",
            difficulty,
            sum(cell is None for row in puzzle for cell in row),
            cells_to_remove(difficulty),
        )
        return GeneratedPuzzle(puzzle, solution)

    def fill_board(self, board):
        find = self.find_empty(board)
        if not find:
            return True
        else:
            row, col = find

        nums = list(range(1, SIZE + 1))
        self.rng.shuffle(nums)

        for num in nums:
            if self.is_valid(board, num, (row, col)):
                board[row][col] = num

                if self.fill_board(board):
                    return True

                board[row][col] = None
        return False

    def remove_cells(self, solution, difficulty):
        puzzle = copy_board(solution)
        squares_to_remove = cells_to_remove(difficulty)

        cells = [(r, c) for r in range(SIZE) for c in range(SIZE)]
        self.rng.shuffle(cells)

        squares_removed = 0

        for r, c in cells:
            if squares_removed >= squares_to_remove:
                break

            backup = puzzle[r][c]
            puzzle[r][c] = None

            if self.has_unique_solution(copy_board(puzzle)):
                squares_removed += 1
            else:
                puzzle[r][c] = backup

        return puzzle

    def has_unique_solution(self, board):
        return self.count_solutions(board, limit=2) == 1

    def count_solutions(self, board, limit=2):
        """Count completions of ``board``, giving up once ``limit`` are found.

        Empty cells are visited in row-major order. Row, column and box
        membership is tracked in sets so each candidate check is constant time.
        The board passed in is left untouched.
        """
        board = copy_board(board)
        rows = [set() for _ in range(SIZE)]
        cols = [set() for _ in range(SIZE)]
        boxes = [set() for _ in range(SIZE)]
        empties = []

        for r in range(SIZE):
            for c in range(SIZE):
                num = board[r][c]
                if num is None:
                    empties.append((r, c))
                else:
                    rows[r].add(num)
                    cols[c].add(num)
                    boxes[box_index(r, c)].add(num)

        def search(index):
            if index == len(empties):
                return 1

            row, col = empties[index]
            box = box_index(row, col)
            count = 0
            for num in range(1, SIZE + 1):
                if num in rows[row] or num in cols[col] or num in boxes[box]:
                    continue

                board[row][col] = num
                rows[row].add(num)
                cols[col].add(num)
                boxes[box].add(num)

                count += search(index + 1)

                board[row][col] = None  # Backtrack
                rows[row].discard(num)
                cols[col].discard(num)
                boxes[box].discard(num)

                if count >= limit:
                    break
            return count

        return search(0)

    def is_valid(self, board, num, pos):
        # Check row
        for i in range(SIZE):
            if board[pos[0]][i] == num and pos[1] != i:
                return False

        # Check column
        for i in range(SIZE):
            if board[i][pos[1]] == num and pos[0] != i:
                return False

        # Check box
        box_x = pos[1] // BOX
        box_y = pos[0] // BOX

        for i in range(box_y * BOX, box_y * BOX + BOX):
            for j in range(box_x * BOX, box_x * BOX + BOX):
                if board[i][j] == num and (i, j) != pos:
                    return False
        return True

    def find_empty(self, board):
        for i in range(SIZE):
            for j in range(SIZE):
                if board[i][j] is None:
                    return (i, j)  # row, col
        return None


def generate(difficulty):
    """Return a fresh ``(initial_board, solved_board)`` pair for ``difficulty``."""
    return SudokuGenerator().generate(difficulty)


def _units(board):
    for row in board:
        yield row
    for col in range(SIZE):
        yield [board[row][col] for row in range(SIZE)]
    for br in range(0, SIZE, BOX):
        for bc in range(0, SIZE, BOX):
            yield [board[r][c] for r in range(br, br + BOX) for c in range(bc, bc + BOX)]


def is_valid_board(board):
    """True when no row, column or box repeats a filled value."""
    for unit in _units(board):
        nums = [v for v in unit if v is not None]
        if len(nums) != len(set(nums)):
            return False
    return True


def is_board_complete(board):
    if any(cell is None for row in board for cell in row):
        return False
    return is_valid_board(board)


def is_solution_correct(user_board, solved_board):
    return all(
        user_board[r][c] == solved_board[r][c]
        for r in range(SIZE)
        for c in range(SIZE)
    )


def format_time(seconds):
    minutes, remaining = divmod(int(seconds), 60)
    return f"{minutes:02d}:{remaining:02d}"


def difficulty_label(level):
    for label, (low, high) in DIFFICULTY_RANGES.items():
        if low <= level <= high:
            return label
    return None

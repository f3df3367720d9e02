# -*- coding: utf-8 -*-
"""Test cases for the puzzle generator and board predicates."""
import random
import unittest

import game
from game import SudokuGenerator, cells_to_remove, copy_board
from tests.tools import AMBIGUOUS_CELLS, SOLVED_BOARD, clear_cells, empty_count


class TestRemovalCount(unittest.TestCase):
    def test_removal_table(self):
        expected = {1: 30, 2: 35, 3: 40, 4: 45, 5: 50, 6: 55, 7: 60, 8: 60, 9: 65, 10: 70}
        for level, count in expected.items():
            with self.subTest(level=level):
                self.assertEqual(cells_to_remove(level), count)

    def test_out_of_range_difficulty_is_rejected(self):
        with self.assertRaises(ValueError):
            game.generate(0)
        with self.assertRaises(ValueError):
            game.generate(11)


class TestBoardPredicates(unittest.TestCase):
    def test_row_conflict(self):
        board = game.empty_board()
        board[0] = [5, 3, 5, None, None, None, None, None, None]
        self.assertFalse(game.is_valid_board(board))
        self.assertFalse(game.is_board_complete(board))

    def test_column_and_box_conflicts(self):
        board = game.empty_board()
        board[0][4] = 7
        board[8][4] = 7
        self.assertFalse(game.is_valid_board(board))

        board = game.empty_board()
        board[3][3] = 2
        board[5][5] = 2
        self.assertFalse(game.is_valid_board(board))

    def test_partial_board_is_valid_but_incomplete(self):
        board = clear_cells(SOLVED_BOARD, [(0, 0), (5, 7)])
        self.assertTrue(game.is_valid_board(board))
        self.assertFalse(game.is_board_complete(board))
        self.assertTrue(game.is_valid_board(game.empty_board()))

    def test_complete_board(self):
        self.assertTrue(game.is_board_complete(SOLVED_BOARD))

    def test_predicates_do_not_mutate(self):
        board = clear_cells(SOLVED_BOARD, [(1, 1)])
        before = copy_board(board)
        first = (game.is_valid_board(board), game.is_board_complete(board))
        second = (game.is_valid_board(board), game.is_board_complete(board))
        self.assertEqual(first, second)
        self.assertEqual(board, before)

    def test_solution_correct(self):
        self.assertTrue(game.is_solution_correct(SOLVED_BOARD, SOLVED_BOARD))
        wrong = copy_board(SOLVED_BOARD)
        wrong[0][0], wrong[0][1] = wrong[0][1], wrong[0][0]
        self.assertFalse(game.is_solution_correct(wrong, SOLVED_BOARD))
        self.assertFalse(game.is_solution_correct(clear_cells(SOLVED_BOARD, [(2, 2)]), SOLVED_BOARD))

    def test_format_time_and_labels(self):
        self.assertEqual(game.format_time(0), "00:00")
        self.assertEqual(game.format_time(754), "12:34")
        self.assertEqual(game.difficulty_label(3), "easy")
        self.assertEqual(game.difficulty_label(4), "medium")
        self.assertEqual(game.difficulty_label(10), "hard")


class TestUniquenessChecker(unittest.TestCase):
    def setUp(self):
        self.generator = SudokuGenerator(rng=random.Random(0))

    def test_full_board_is_unique(self):
        self.assertTrue(self.generator.has_unique_solution(copy_board(SOLVED_BOARD)))

    def test_single_forced_cell(self):
        board = clear_cells(SOLVED_BOARD, [(0, 0)])
        self.assertTrue(self.generator.has_unique_solution(board))

    def test_swappable_cells_are_ambiguous(self):
        board = clear_cells(SOLVED_BOARD, AMBIGUOUS_CELLS)
        self.assertFalse(self.generator.has_unique_solution(board))
        self.assertEqual(self.generator.count_solutions(board, limit=10), 2)

    def test_empty_board_stops_at_limit(self):
        self.assertEqual(self.generator.count_solutions(game.empty_board(), limit=2), 2)

    def test_checker_leaves_input_untouched(self):
        board = clear_cells(SOLVED_BOARD, AMBIGUOUS_CELLS + [(0, 0)])
        before = copy_board(board)
        self.generator.has_unique_solution(board)
        self.assertEqual(board, before)


class TestGenerator(unittest.TestCase):
    def test_fill_board(self):
        board = game.empty_board()
        self.assertTrue(SudokuGenerator(rng=random.Random(7)).fill_board(board))
        self.assertTrue(game.is_board_complete(board))

    def test_remove_cells_does_not_mutate_solution(self):
        generator = SudokuGenerator(rng=random.Random(3))
        solution = copy_board(SOLVED_BOARD)
        puzzle = generator.remove_cells(solution, 2)
        self.assertEqual(solution, SOLVED_BOARD)
        self.assertLessEqual(empty_count(puzzle), 35)
        self.assertTrue(generator.has_unique_solution(puzzle))

    def test_generate_every_level(self):
        for level in range(1, 11):
            with self.subTest(level=level):
                generator = SudokuGenerator(rng=random.Random(level))
                puzzle, solution = generator.generate(level)

                self.assertTrue(game.is_board_complete(solution))
                self.assertTrue(game.is_valid_board(puzzle))
                for r in range(9):
                    for c in range(9):
                        if puzzle[r][c] is not None:
                            self.assertEqual(puzzle[r][c], solution[r][c])
                self.assertTrue(generator.has_unique_solution(puzzle))
                self.assertLessEqual(empty_count(puzzle), cells_to_remove(level))

    def test_harder_levels_clear_more_cells(self):
        easy, _ = SudokuGenerator(rng=random.Random(11)).generate(1)
        hard, _ = SudokuGenerator(rng=random.Random(11)).generate(10)
        self.assertLessEqual(empty_count(easy), empty_count(hard))

    def test_module_generate(self):
        result = game.generate(1)
        self.assertTrue(game.is_board_complete(result.solved_board))
        self.assertLessEqual(empty_count(result.initial_board), 30)


if __name__ == "__main__":
    unittest.main()

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, StrictInt, field_validator

from game import MAX_DIFFICULTY, MIN_DIFFICULTY, SIZE

Cell = Optional[int]


def _check_board(board):
    if len(board) != SIZE or any(len(row) != SIZE for row in board):
        raise ValueError(f"board must be {SIZE}x{SIZE}")
    for row in board:
        for cell in row:
            if cell is not None and not 1 <= cell <= SIZE:
                raise ValueError(f"cell values must be between 1 and {SIZE} or null")
    return board


class LoginBody(BaseModel):
    id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    email: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    profileImageUrl: Optional[str] = None


class CreateGameBody(BaseModel):
    difficultyLevel: StrictInt = Field(..., ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)


class UpdateGameBody(BaseModel):
    currentBoard: List[List[Cell]]
    isCompleted: Optional[bool] = None
    timeSpent: Optional[int] = Field(None, ge=0)
    completedAt: Optional[datetime] = None

    @field_validator("currentBoard")
    @classmethod
    def board_shape(cls, board):
        return _check_board(board)


class CheckBoardBody(BaseModel):
    currentBoard: Optional[List[List[Cell]]] = None

    @field_validator("currentBoard")
    @classmethod
    def board_shape(cls, board):
        if board is None:
            return board
        return _check_board(board)


class AddFriendBody(BaseModel):
    friendId: str = Field(..., min_length=1)


class SharePuzzleBody(BaseModel):
    receiverId: str = Field(..., min_length=1)
    puzzleId: int
    message: Optional[str] = None

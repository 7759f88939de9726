from enum import Enum

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ErrorCode(Enum):
    """Application error kinds: (machine code, message, HTTP status)."""

    IDENTIFIER_REQUIRED = ("IDENTIFIER_REQUIRED", "Username or email is required", status.HTTP_400_BAD_REQUEST)
    INVALID_CREDENTIALS = ("INVALID_CREDENTIALS", "Incorrect username or password", status.HTTP_401_UNAUTHORIZED)
    USER_LOCKED = ("USER_LOCKED", "User account is locked", status.HTTP_403_FORBIDDEN)
    ROLE_MISSING = ("ROLE_MISSING", "User has no assigned role", status.HTTP_403_FORBIDDEN)
    UNAUTHENTICATED = ("UNAUTHENTICATED", "Could not validate credentials", status.HTTP_401_UNAUTHORIZED)
    FORBIDDEN = ("FORBIDDEN", "Not enough permissions", status.HTTP_403_FORBIDDEN)
    USER_NOT_FOUND = ("USER_NOT_FOUND", "User not found", status.HTTP_404_NOT_FOUND)
    FARM_NOT_FOUND = ("FARM_NOT_FOUND", "Farm not found", status.HTTP_404_NOT_FOUND)
    PLOT_NOT_FOUND = ("PLOT_NOT_FOUND", "Plot not found", status.HTTP_404_NOT_FOUND)
    SEASON_NOT_FOUND = ("SEASON_NOT_FOUND", "Season not found", status.HTTP_404_NOT_FOUND)
    EXPENSE_NOT_FOUND = ("EXPENSE_NOT_FOUND", "Expense not found", status.HTTP_404_NOT_FOUND)
    TASK_NOT_FOUND = ("TASK_NOT_FOUND", "Task not found", status.HTTP_404_NOT_FOUND)
    EXPENSE_PERIOD_LOCKED = (
        "EXPENSE_PERIOD_LOCKED",
        "Expenses cannot be changed for a closed season",
        status.HTTP_409_CONFLICT,
    )
    INVALID_SEASON_DATES = (
        "INVALID_SEASON_DATES",
        "Date must fall within the season period",
        status.HTTP_400_BAD_REQUEST,
    )
    EXPENSE_AMOUNT_INVALID = (
        "EXPENSE_AMOUNT_INVALID",
        "Expense amount must be greater than zero",
        status.HTTP_400_BAD_REQUEST,
    )

    def __init__(self, code: str, message: str, status_code: int):
        self.code = code
        self.message = message
        self.status_code = status_code


class AppException(Exception):
    def __init__(self, error_code: ErrorCode, detail: str = None):
        self.error_code = error_code
        self.detail = detail or error_code.message
        super().__init__(self.detail)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    headers = None
    if exc.error_code.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.error_code.status_code,
        content={"code": exc.error_code.code, "message": exc.detail},
        headers=headers,
    )

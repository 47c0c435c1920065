"""
Custom exceptions for the Girassol tracker.
Provides specific exception types for better error handling and recovery.
"""


class GirassolException(Exception):
    """Base exception for the tracker"""
    pass


class HabitNotFoundException(GirassolException):
    """Raised when a habit is not found"""
    def __init__(self, habit_id: str):
        self.habit_id = habit_id
        super().__init__(f"Habit with ID {habit_id} not found")


class TodoNotFoundException(GirassolException):
    """Raised when a todo is not found"""
    def __init__(self, todo_id: str):
        self.todo_id = todo_id
        super().__init__(f"Todo with ID {todo_id} not found")


class SubtaskNotFoundException(GirassolException):
    """Raised when a subtask is not found inside a todo"""
    def __init__(self, todo_id: str, subtask_id: str):
        self.todo_id = todo_id
        self.subtask_id = subtask_id
        super().__init__(f"Subtask {subtask_id} not found in todo {todo_id}")


class JournalEntryNotFoundException(GirassolException):
    """Raised when a journal entry is not found"""
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry with ID {entry_id} not found")


class DailyLogNotFoundException(GirassolException):
    """Raised when there is no daily log for a date"""
    def __init__(self, log_date: str):
        self.log_date = log_date
        super().__init__(f"No daily log for {log_date}")


class InvalidTimeFormatException(GirassolException):
    """Raised when time format is invalid"""
    def __init__(self, time_str: str):
        self.time_str = time_str
        super().__init__(f"Invalid time format: {time_str}. Expected HH:MM")


class DateParseException(GirassolException):
    """Raised when a legacy date cannot be converted to ISO format"""
    def __init__(self, raw_value):
        self.raw_value = raw_value
        super().__init__(f"Cannot parse legacy date: {raw_value!r}")


class StorageException(GirassolException):
    """Raised when the key-value store cannot read or write a key"""
    def __init__(self, operation: str, key: str, details: str):
        self.operation = operation
        self.key = key
        self.details = details
        super().__init__(f"Storage {operation} failed for '{key}': {details}")


class InvalidBackupException(GirassolException):
    """Raised when an import document is unusable"""
    def __init__(self, message: str):
        super().__init__(f"Invalid backup file: {message}")


class BackupException(GirassolException):
    """Raised when backup file operations fail"""
    def __init__(self, message: str):
        super().__init__(f"Backup operation failed: {message}")


class AIServiceException(GirassolException):
    """Raised when the text generation service fails or answers garbage"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        super().__init__(f"AI {operation} failed: {details}")


class ValidationException(GirassolException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")

"""
Todo management service.
Handles todos, their subtasks and AI-suggested subtasks.
"""
import logging
from typing import List, Optional
from uuid import uuid4

from pydantic import ValidationError

from girassol.constants import KEY_TODOS, TODO_PRIORITY_MEDIUM, TODO_PRIORITIES
from girassol.exceptions import (
    TodoNotFoundException, SubtaskNotFoundException, ValidationException
)
from girassol.schemas import Todo, SubTask
from girassol.services.ai_service import AIService, subtask_guard

logger = logging.getLogger("girassol.todos")


class TodoService:
    """Service for todo management"""

    def __init__(self, store, ai_service: Optional[AIService] = None):
        self.store = store
        self.ai_service = ai_service

    def list_todos(self) -> List[Todo]:
        return self._load()

    def add_todo(self, text: str, priority: str = TODO_PRIORITY_MEDIUM) -> Todo:
        """Create a pending todo with no subtasks"""
        if not text or not text.strip():
            raise ValidationException("text", "must not be blank")
        if priority not in TODO_PRIORITIES:
            raise ValidationException("priority", f"must be one of {', '.join(TODO_PRIORITIES)}")

        todos = self._load()
        todo = Todo(id=uuid4().hex, text=text.strip(), completed=False, priority=priority, subtasks=[])
        todos.append(todo)
        self._save(todos)
        return todo

    def toggle_todo(self, todo_id: str) -> Todo:
        """Flip completion of a todo; subtasks are left as they are"""
        todos = self._load()
        todo = self._find(todos, todo_id)
        todo.completed = not todo.completed
        self._save(todos)
        return todo

    def delete_todo(self, todo_id: str) -> None:
        todos = self._load()
        todo = self._find(todos, todo_id)
        self._save([t for t in todos if t.id != todo.id])

    def add_subtask(self, todo_id: str, text: str) -> Todo:
        """Append a subtask to a todo"""
        if not text or not text.strip():
            raise ValidationException("text", "must not be blank")

        todos = self._load()
        todo = self._find(todos, todo_id)
        todo.subtasks.append(SubTask(id=uuid4().hex, text=text.strip(), completed=False))
        self._save(todos)
        return todo

    def toggle_subtask(self, todo_id: str, subtask_id: str) -> Todo:
        """Flip completion of one subtask; the parent todo is not touched"""
        todos = self._load()
        todo = self._find(todos, todo_id)
        subtask = self._find_subtask(todo, subtask_id)
        subtask.completed = not subtask.completed
        self._save(todos)
        return todo

    def delete_subtask(self, todo_id: str, subtask_id: str) -> Todo:
        todos = self._load()
        todo = self._find(todos, todo_id)
        subtask = self._find_subtask(todo, subtask_id)
        todo.subtasks = [s for s in todo.subtasks if s.id != subtask.id]
        self._save(todos)
        return todo

    def generate_subtasks(self, todo_id: str) -> Todo:
        """
        Append AI-suggested subtasks to a todo.

        Only one generation per todo runs at a time; a concurrent request
        returns the todo unchanged. A failed or empty suggestion list also
        leaves the todo unchanged.

        Raises:
            TodoNotFoundException: If no todo has this ID
        """
        todo = self._find(self._load(), todo_id)
        if self.ai_service is None:
            return todo

        with subtask_guard.claim(todo_id) as acquired:
            if not acquired:
                logger.info(f"Subtask generation already running for todo {todo_id}")
                return todo

            suggestions = self.ai_service.generate_subtasks(todo.text)
            if not suggestions:
                return todo

            # Reload: the collection may have changed while the call ran
            todos = self._load()
            todo = self._find(todos, todo_id)
            todo.subtasks.extend(
                SubTask(id=uuid4().hex, text=text, completed=False) for text in suggestions
            )
            self._save(todos)
            logger.info(f"Added {len(suggestions)} AI subtasks to todo {todo_id}")
            return todo

    def _find(self, todos: List[Todo], todo_id: str) -> Todo:
        for todo in todos:
            if todo.id == todo_id:
                return todo
        raise TodoNotFoundException(todo_id)

    def _find_subtask(self, todo: Todo, subtask_id: str) -> SubTask:
        for subtask in todo.subtasks:
            if subtask.id == subtask_id:
                return subtask
        raise SubtaskNotFoundException(todo.id, subtask_id)

    def _load(self) -> List[Todo]:
        todos = []
        for raw in self.store.get_list(KEY_TODOS):
            try:
                todos.append(Todo.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid todo record: {e}")
        return todos

    def _save(self, todos: List[Todo]) -> None:
        self.store.set(KEY_TODOS, [t.to_storage() for t in todos])

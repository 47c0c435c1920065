"""
Tests for TodoService.

Tests cover:
1. Todo and subtask mutations
2. AI subtask generation and its in-flight guard
"""
import json
import pytest

from girassol.exceptions import TodoNotFoundException, SubtaskNotFoundException, ValidationException
from girassol.services.ai_service import subtask_guard
from girassol.services.todo_service import TodoService


class TestTodos:
    """Tests for todo mutations"""

    def test_add_todo_defaults(self, store):
        todo = TodoService(store).add_todo("Estudar inglês")

        assert todo.priority == "medium"
        assert todo.completed is False
        assert todo.subtasks == []
        assert store.get("todos")[0]["text"] == "Estudar inglês"

    def test_add_todo_rejects_blank_and_bad_priority(self, store):
        service = TodoService(store)
        with pytest.raises(ValidationException):
            service.add_todo("  ")
        with pytest.raises(ValidationException):
            service.add_todo("Correr", priority="urgent")

    def test_toggle_keeps_subtasks(self, store):
        """Should flip only the todo itself"""
        service = TodoService(store)
        todo = service.add_todo("Mudar de casa", "high")
        service.add_subtask(todo.id, "Caixas")

        toggled = service.toggle_todo(todo.id)

        assert toggled.completed is True
        assert toggled.subtasks[0].completed is False

    def test_delete_todo(self, store):
        service = TodoService(store)
        todo = service.add_todo("Correr")
        service.delete_todo(todo.id)

        assert service.list_todos() == []
        with pytest.raises(TodoNotFoundException):
            service.toggle_todo(todo.id)


class TestSubtasks:
    """Tests for subtask mutations"""

    def test_toggle_and_delete_subtask(self, store):
        service = TodoService(store)
        todo = service.add_todo("Viagem")
        todo = service.add_subtask(todo.id, "Passagens")
        subtask_id = todo.subtasks[0].id

        todo = service.toggle_subtask(todo.id, subtask_id)
        assert todo.subtasks[0].completed is True
        assert todo.completed is False

        todo = service.delete_subtask(todo.id, subtask_id)
        assert todo.subtasks == []

    def test_unknown_subtask(self, store):
        service = TodoService(store)
        todo = service.add_todo("Viagem")

        with pytest.raises(SubtaskNotFoundException):
            service.toggle_subtask(todo.id, "missing")


class TestGenerateSubtasks:
    """Tests for AI subtask generation"""

    def test_appends_suggestions(self, store, make_ai_service):
        ai = make_ai_service(json.dumps({"subtasks": ["Pesquisar", "Comprar", " "]}))
        service = TodoService(store, ai)
        todo = service.add_todo("Montar bicicleta")
        service.add_subtask(todo.id, "Ver manual")

        updated = service.generate_subtasks(todo.id)

        assert [s.text for s in updated.subtasks] == ["Ver manual", "Pesquisar", "Comprar"]
        assert len(store.get("todos")[0]["subtasks"]) == 3

    def test_failure_leaves_todo_unchanged(self, store, failing_ai_service):
        service = TodoService(store, failing_ai_service)
        todo = service.add_todo("Montar bicicleta")

        assert service.generate_subtasks(todo.id).subtasks == []

    def test_in_flight_request_is_not_repeated(self, store, make_ai_service):
        """Should not call the AI while a generation for the todo is running"""
        ai = make_ai_service(json.dumps({"subtasks": ["Passo"]}))
        service = TodoService(store, ai)
        todo = service.add_todo("Montar bicicleta")

        with subtask_guard.claim(todo.id) as acquired:
            assert acquired is True
            result = service.generate_subtasks(todo.id)

        assert result.subtasks == []
        assert ai.client.chat.completions.calls == []

    def test_unknown_todo(self, store, make_ai_service):
        with pytest.raises(TodoNotFoundException):
            TodoService(store, make_ai_service("[]")).generate_subtasks("missing")


class TestMalformedCollection:
    """Tests for todo collections that are not lists"""

    def test_non_list_reads_as_empty(self, store):
        store.set("todos", True)

        assert TodoService(store).list_todos() == []

    def test_add_after_import_of_scalar(self, store):
        store.set("todos", 7)

        todo = TodoService(store).add_todo("Correr")

        assert [t["id"] for t in store.get("todos")] == [todo.id]

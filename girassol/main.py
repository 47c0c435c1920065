from fastapi import FastAPI, Depends, HTTPException, Path as PathParam, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import os
from pathlib import Path

from girassol.database import engine, get_db, Base, SessionLocal
from girassol import models  # Import all models to register them with Base
from girassol.schemas import (
    Habit, HabitCreate, HabitToggle, HabitStats,
    Todo, TodoCreate, SubTaskCreate,
    JournalEntry, JournalEntryCreate, JournalEntryUpdate,
    DailyLog, AiNewsItem,
    Preferences, PreferencesUpdate,
    MonthGridResponse, ProgressResponse, ImportResponse, BackupFileResponse
)
from girassol.exceptions import (
    HabitNotFoundException, TodoNotFoundException, SubtaskNotFoundException,
    JournalEntryNotFoundException, DailyLogNotFoundException,
    ValidationException, InvalidBackupException, BackupException
)
from girassol.scheduler import start_scheduler, stop_scheduler
from girassol.services.ai_service import AIService
from girassol.services.date_service import DateService
from girassol.services.habit_service import HabitService
from girassol.services.health_service import HealthService
from girassol.services.journal_service import JournalService
from girassol.services.news_service import NewsService
from girassol.services.preferences_service import PreferencesService
from girassol.services.progress_service import ProgressService
from girassol.services.schema_registry import registry
from girassol.services.storage_service import KeyValueStore
from girassol.services.todo_service import TodoService
from girassol import backup_service

from girassol.constants import DEFAULT_LOG_DIRECTORY_PROD, DEFAULT_LOG_DIRECTORY_DEV

LOG_DIR = os.getenv("GIRASSOL_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("GIRASSOL_LOG_FILE", "app.log")
LOG_LEVEL = os.getenv("GIRASSOL_LOG_LEVEL", "INFO").upper()

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except OSError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("girassol")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Girassol API",
    description="Personal self-improvement tracker: habits, todos, journal and health",
    version="1.0.0"
)

# CORS settings for the web frontend
from girassol.constants import CORS_ALLOWED_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ai_service: Optional[AIService] = None


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return KeyValueStore(db)


def get_ai_service() -> AIService:
    """Shared AI client, created on first use"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service


def run_startup_migrations():
    """Apply pending schema migrations before serving requests"""
    db = SessionLocal()
    try:
        registry.run_migrations(KeyValueStore(db), DateService.today())
    except Exception as e:
        logger.error(f"Startup migration failed: {e}")
        # Don't crash the app - continue with existing data
    finally:
        db.close()


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"Girassol API started. Logging to: {log_path}")
    run_startup_migrations()
    start_scheduler()

# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Girassol API")
    stop_scheduler()

# Health check
@app.get("/")
async def root():
    return {"message": "Girassol API", "status": "active"}


# ===== HABIT ENDPOINTS =====

@app.get("/api/habits", response_model=List[Habit])
async def get_habits(store: KeyValueStore = Depends(get_store)):
    """Get all habits with current streaks"""
    return HabitService(store).list_habits()


@app.get("/api/habits/stats", response_model=List[HabitStats])
async def get_habit_stats(store: KeyValueStore = Depends(get_store)):
    """Get streak, consistency score and last-7-day grid of every habit"""
    return HabitService(store).get_habit_stats()


@app.post("/api/habits", response_model=Habit, status_code=status.HTTP_201_CREATED)
async def create_habit(habit: HabitCreate, store: KeyValueStore = Depends(get_store)):
    """Create a new habit"""
    try:
        return HabitService(store).add_habit(habit.title)
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/habits/{habit_id}/toggle", response_model=Habit)
async def toggle_habit(habit_id: str, toggle: HabitToggle, store: KeyValueStore = Depends(get_store)):
    """Mark or unmark a habit on a day"""
    try:
        return HabitService(store).toggle_date(habit_id, toggle.date.isoformat())
    except HabitNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/api/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_habit(habit_id: str, store: KeyValueStore = Depends(get_store)):
    """Delete a habit"""
    try:
        HabitService(store).delete_habit(habit_id)
    except HabitNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


# ===== TODO ENDPOINTS =====

@app.get("/api/todos", response_model=List[Todo])
async def get_todos(store: KeyValueStore = Depends(get_store)):
    """Get all todos"""
    return TodoService(store).list_todos()


@app.post("/api/todos", response_model=Todo, status_code=status.HTTP_201_CREATED)
async def create_todo(todo: TodoCreate, store: KeyValueStore = Depends(get_store)):
    """Create a new todo"""
    try:
        return TodoService(store).add_todo(todo.text, todo.priority)
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/todos/{todo_id}/toggle", response_model=Todo)
async def toggle_todo(todo_id: str, store: KeyValueStore = Depends(get_store)):
    """Mark a todo as done or pending"""
    try:
        return TodoService(store).toggle_todo(todo_id)
    except TodoNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/api/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(todo_id: str, store: KeyValueStore = Depends(get_store)):
    """Delete a todo with its subtasks"""
    try:
        TodoService(store).delete_todo(todo_id)
    except TodoNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/todos/{todo_id}/subtasks", response_model=Todo, status_code=status.HTTP_201_CREATED)
async def create_subtask(todo_id: str, subtask: SubTaskCreate, store: KeyValueStore = Depends(get_store)):
    """Add a subtask to a todo"""
    try:
        return TodoService(store).add_subtask(todo_id, subtask.text)
    except TodoNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/todos/{todo_id}/subtasks/generate", response_model=Todo)
def generate_subtasks(
    todo_id: str,
    store: KeyValueStore = Depends(get_store),
    ai_service: AIService = Depends(get_ai_service)
):
    """Append AI-suggested subtasks to a todo"""
    try:
        return TodoService(store, ai_service).generate_subtasks(todo_id)
    except TodoNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/todos/{todo_id}/subtasks/{subtask_id}/toggle", response_model=Todo)
async def toggle_subtask(todo_id: str, subtask_id: str, store: KeyValueStore = Depends(get_store)):
    """Mark a subtask as done or pending"""
    try:
        return TodoService(store).toggle_subtask(todo_id, subtask_id)
    except (TodoNotFoundException, SubtaskNotFoundException) as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/api/todos/{todo_id}/subtasks/{subtask_id}", response_model=Todo)
async def delete_subtask(todo_id: str, subtask_id: str, store: KeyValueStore = Depends(get_store)):
    """Remove a subtask from a todo"""
    try:
        return TodoService(store).delete_subtask(todo_id, subtask_id)
    except (TodoNotFoundException, SubtaskNotFoundException) as e:
        raise HTTPException(status_code=404, detail=str(e))


# ===== JOURNAL ENDPOINTS =====

@app.get("/api/journal", response_model=List[JournalEntry])
async def get_journal(store: KeyValueStore = Depends(get_store)):
    """Get journal entries (newest first)"""
    return JournalService(store).list_entries()


@app.post("/api/journal", response_model=JournalEntry, status_code=status.HTTP_201_CREATED)
async def create_journal_entry(entry: JournalEntryCreate, store: KeyValueStore = Depends(get_store)):
    """Write a new journal entry"""
    try:
        return JournalService(store).create_entry(entry.content, entry.mood)
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.put("/api/journal/{entry_id}", response_model=JournalEntry)
async def update_journal_entry(
    entry_id: str,
    entry_update: JournalEntryUpdate,
    store: KeyValueStore = Depends(get_store)
):
    """Edit a journal entry"""
    try:
        return JournalService(store).update_entry(entry_id, entry_update.content, entry_update.mood)
    except JournalEntryNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/journal/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_journal_entry(entry_id: str, store: KeyValueStore = Depends(get_store)):
    """Delete a journal entry"""
    try:
        JournalService(store).delete_entry(entry_id)
    except JournalEntryNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/journal/{entry_id}/analyze", response_model=JournalEntry)
def analyze_journal_entry(
    entry_id: str,
    store: KeyValueStore = Depends(get_store),
    ai_service: AIService = Depends(get_ai_service)
):
    """Attach AI coaching feedback to an entry (cached after the first call)"""
    try:
        return JournalService(store, ai_service).analyze_entry(entry_id)
    except JournalEntryNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))


# ===== HEALTH ENDPOINTS =====

@app.get("/api/health-logs", response_model=List[DailyLog])
async def get_health_logs(store: KeyValueStore = Depends(get_store)):
    """Get all daily logs sorted by date"""
    return HealthService(store).list_logs()


@app.put("/api/health-logs", response_model=List[DailyLog])
async def save_health_log(log: DailyLog, store: KeyValueStore = Depends(get_store)):
    """Insert or replace the log of a day"""
    return HealthService(store).save_log(log)


@app.get("/api/health-logs/weights")
async def get_weight_series(limit: Optional[int] = None, store: KeyValueStore = Depends(get_store)):
    """Get weight points for the weight chart"""
    return HealthService(store).weight_series(limit)


@app.get("/api/health-logs/{log_date}", response_model=DailyLog)
async def get_health_log(log_date: str, store: KeyValueStore = Depends(get_store)):
    """Get the log of a day (blank when nothing was recorded)"""
    try:
        return HealthService(store).get_log(log_date)
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/health-logs/{log_date}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_health_log(log_date: str, store: KeyValueStore = Depends(get_store)):
    """Delete the log of a day"""
    try:
        HealthService(store).delete_log(log_date)
    except DailyLogNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=str(e))


# ===== NEWS / PREFERENCES / PROGRESS =====

@app.get("/api/news", response_model=List[AiNewsItem])
def get_news(
    force: bool = False,
    store: KeyValueStore = Depends(get_store),
    ai_service: AIService = Depends(get_ai_service)
):
    """Get the AI news feed (cached for the current day unless force is set)"""
    return NewsService(store, ai_service).get_news(force=force)


@app.get("/api/preferences", response_model=Preferences)
async def get_preferences(store: KeyValueStore = Depends(get_store)):
    """Get reminder and sound preferences"""
    return PreferencesService(store).get_preferences()


@app.put("/api/preferences", response_model=Preferences)
async def update_preferences(update: PreferencesUpdate, store: KeyValueStore = Depends(get_store)):
    """Update reminder and sound preferences"""
    return PreferencesService(store).update_preferences(update)


@app.get("/api/progress", response_model=ProgressResponse)
async def get_progress(store: KeyValueStore = Depends(get_store)):
    """Get chart data and earned badges"""
    return ProgressService(store).get_progress()


# ===== CALENDAR ENDPOINTS =====

@app.get("/api/calendar/last-days", response_model=List[str])
async def get_last_days(n: int = Query(7, ge=0, le=366)):
    """Get the last n ISO dates ending today (oldest first)"""
    return DateService.last_n_days(n)


@app.get("/api/calendar/{year}/{month}", response_model=MonthGridResponse)
async def get_month_grid(
    year: int = PathParam(..., ge=1, le=9999),
    month: int = PathParam(..., ge=1, le=12)
):
    """Get the Sunday-start grid of a month"""
    grid = DateService.month_grid(year, month)
    return MonthGridResponse(
        year=grid.year, month=grid.month, leading_blanks=grid.leading_blanks, days=grid.days
    )


# ===== DATA ENDPOINTS =====

@app.get("/api/data/export")
async def export_data(store: KeyValueStore = Depends(get_store)):
    """Download every backed-up collection as one JSON document"""
    document = backup_service.BackupCodec(store).export_all()
    filename = f"girassol_backup_{DateService.today().isoformat()}.json"
    return Response(
        content=document,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@app.post("/api/data/import", response_model=ImportResponse)
async def import_data(request: Request, store: KeyValueStore = Depends(get_store)):
    """Restore collections from an exported document (raw JSON body)"""
    document = (await request.body()).decode("utf-8", errors="replace")
    try:
        result = backup_service.BackupCodec(store).import_document(document)
    except InvalidBackupException as e:
        logger.error(f"Import rejected: {e}")
        raise HTTPException(status_code=400, detail="Invalid backup file")
    except BackupException as e:
        logger.error(f"Import failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to write backup data")
    return ImportResponse(
        success=True, written=result.written, skipped=result.skipped, failed=result.failed
    )


@app.delete("/api/data", status_code=status.HTTP_204_NO_CONTENT)
async def clear_data(store: KeyValueStore = Depends(get_store)):
    """Remove every backed-up collection"""
    backup_service.BackupCodec(store).clear_all()


# ===== BACKUP ENDPOINTS =====

def _backup_response(backup: backup_service.BackupFile) -> BackupFileResponse:
    return BackupFileResponse(
        filename=backup.filename,
        size_bytes=backup.size_bytes,
        backup_type=backup.backup_type,
        created_at=backup.created_at.isoformat()
    )


@app.get("/api/backups", response_model=List[BackupFileResponse])
async def get_backups_endpoint(limit: int = 50):
    """Get all backups (newest first)"""
    return [_backup_response(b) for b in backup_service.get_all_backups(limit=limit)]


@app.post("/api/backups", response_model=BackupFileResponse, status_code=status.HTTP_201_CREATED)
async def create_backup_endpoint(store: KeyValueStore = Depends(get_store)):
    """Create a manual backup"""
    backup = backup_service.create_local_backup(store, backup_type="manual")

    if not backup:
        raise HTTPException(status_code=500, detail="Failed to create backup")

    return _backup_response(backup)


@app.get("/api/backups/{filename}")
async def download_backup_endpoint(filename: str):
    """Download a backup file"""
    try:
        path = backup_service.get_backup_path(filename)
    except BackupException as e:
        raise HTTPException(status_code=404, detail=str(e))

    return FileResponse(
        path=str(path),
        filename=path.name,
        media_type='application/json'
    )


@app.post("/api/backups/{filename}/restore", response_model=ImportResponse)
async def restore_backup_endpoint(filename: str, store: KeyValueStore = Depends(get_store)):
    """Restore collections from a stored backup file"""
    try:
        document = backup_service.read_backup(filename)
    except BackupException as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        result = backup_service.BackupCodec(store).import_document(document)
    except InvalidBackupException as e:
        logger.error(f"Restore rejected: {e}")
        raise HTTPException(status_code=400, detail="Invalid backup file")
    except BackupException as e:
        logger.error(f"Restore failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to write backup data")
    return ImportResponse(
        success=True, written=result.written, skipped=result.skipped, failed=result.failed
    )


@app.delete("/api/backups/{filename}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_backup_endpoint(filename: str):
    """Delete a backup"""
    if not backup_service.delete_backup(filename):
        raise HTTPException(status_code=404, detail="Backup not found")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("girassol.main:app", host="0.0.0.0", port=8000, reload=False)

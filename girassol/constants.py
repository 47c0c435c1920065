"""
Application-wide constants.
Storage keys, record enums, thresholds and environment-driven defaults.
"""
import os

# ===== STORAGE KEYS =====
# Every persisted key is listed here and registered in services/schema_registry.py.
KEY_HABITS = "habits"
KEY_TODOS = "todos"
KEY_JOURNAL = "journal"
KEY_HEALTH_LOGS = "health_logs"
KEY_NEWS_CACHE = "news_cache"
KEY_LEGACY_WEIGHT = "weight"
KEY_PREFERENCES = "preferences"
KEY_REMINDER_LAST_FIRED = "reminder_last_fired"
KEY_SCHEMA_VERSION = "schema_version"

# ===== RECORDS =====
TODO_PRIORITY_LOW = "low"
TODO_PRIORITY_MEDIUM = "medium"
TODO_PRIORITY_HIGH = "high"
TODO_PRIORITIES = (TODO_PRIORITY_LOW, TODO_PRIORITY_MEDIUM, TODO_PRIORITY_HIGH)

JOURNAL_MOODS = ("happy", "neutral", "sad", "motivated")

MEAL_SLOTS = (
    "breakfast",
    "morningSnack",
    "lunch",
    "afternoonSnack",
    "dinner",
    "supper",
)

# ===== HABITS =====
STREAK_LOOKBACK_DAYS = 365
CONSISTENCY_WINDOW_DAYS = 7
CONSISTENCY_STRONG_THRESHOLD = 80
CONSISTENCY_OK_THRESHOLD = 50
CONSISTENCY_STRONG = "strong"
CONSISTENCY_OK = "ok"
CONSISTENCY_WEAK = "weak"

# ===== PROGRESS / BADGES =====
HEALTH_TREND_LIMIT = 14
BADGE_WORKOUT_WINDOW = 7
BADGE_WORKOUT_MIN = 3
BADGE_COMPLETED_TODOS_MIN = 10
BADGE_STREAK_MIN = 7
BADGE_HABIT_SCORE_MIN = 50

# ===== PREFERENCES / REMINDERS =====
DEFAULT_NOTIFICATION_TIME = "09:00"
REMINDER_POLL_SECONDS = 30
TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"

# ===== AI =====
AI_API_KEY = os.getenv("GIRASSOL_AI_API_KEY") or os.getenv("OPENAI_API_KEY", "")
AI_MODEL = os.getenv("GIRASSOL_AI_MODEL", "gpt-4o-mini")
AI_ANALYSIS_FALLBACK = "Erro ao conectar com a IA. Verifique sua conexão."
AI_ANALYSIS_EMPTY = "Não foi possível gerar análise."
AI_ANALYSIS_NO_KEY = "Configuração de API Key necessária para análise IA."
AI_NEWS_ITEM_LIMIT = 5

# ===== BACKUPS =====
DEFAULT_BACKUP_DIRECTORY_PROD = "/var/lib/girassol/backups"
DEFAULT_BACKUP_DIRECTORY_DEV = "./backups"
BACKUP_KEEP_LOCAL_COUNT = int(os.getenv("GIRASSOL_BACKUP_KEEP", "10"))
BACKUP_FILENAME_PREFIX = "girassol_backup"
AUTO_BACKUP_ENABLED = os.getenv("GIRASSOL_AUTO_BACKUP", "1") == "1"
AUTO_BACKUP_TIME = os.getenv("GIRASSOL_AUTO_BACKUP_TIME", "03:00")

# ===== DATABASE =====
DEFAULT_DB_DIRECTORY_PROD = "/var/lib/girassol"
DB_FILE = "girassol.db"

# ===== LOGGING =====
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/girassol"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

# ===== HTTP =====
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "GIRASSOL_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

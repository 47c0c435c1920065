"""
Background scheduler
Handles:
- Daily reminder polling (every 30 seconds)
- Automatic JSON backups once a day
"""

import logging
from datetime import datetime
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from girassol.constants import REMINDER_POLL_SECONDS, AUTO_BACKUP_ENABLED, AUTO_BACKUP_TIME
from girassol.database import SessionLocal
from girassol.exceptions import InvalidTimeFormatException
from girassol.services.date_service import DateService
from girassol.services.storage_service import KeyValueStore
from girassol.services.reminder_service import ReminderService
import girassol.backup_service as backup_service

logger = logging.getLogger("girassol.scheduler")

# Host notification capability; replaced by the embedding application
notifier = None


def check_daily_reminder():
    """Fire the daily reminder if it is due"""
    db: Session = SessionLocal()
    try:
        store = KeyValueStore(db)
        if ReminderService(store, notifier).check_and_fire(datetime.now()):
            logger.info("Daily reminder sent")
    except Exception as e:
        logger.error(f"Error in check_daily_reminder: {e}")
    finally:
        db.close()


def run_auto_backup():
    """Write the daily JSON backup"""
    db: Session = SessionLocal()
    try:
        backup = backup_service.create_local_backup(KeyValueStore(db), backup_type="auto")
        if backup:
            logger.info(f"Auto-backup successful: {backup.filename}")
        else:
            logger.error("Auto-backup failed")
    except Exception as e:
        logger.error(f"Error in run_auto_backup: {e}")
    finally:
        db.close()


# Create scheduler instance
scheduler = BackgroundScheduler()


def start_scheduler():
    """Start the background scheduler"""
    if scheduler.running:
        return

    logger.info("Starting Girassol background scheduler")

    scheduler.add_job(
        check_daily_reminder,
        IntervalTrigger(seconds=REMINDER_POLL_SECONDS),
        id='check_daily_reminder',
        replace_existing=True
    )

    if AUTO_BACKUP_ENABLED:
        try:
            hour, minute = DateService.parse_time(AUTO_BACKUP_TIME)
        except InvalidTimeFormatException as e:
            logger.error(f"Auto-backup disabled: {e}")
        else:
            scheduler.add_job(
                run_auto_backup,
                CronTrigger(hour=hour, minute=minute),
                id='run_auto_backup',
                replace_existing=True
            )

    scheduler.start()
    logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")

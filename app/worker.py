"""
ARQ Background Worker
AI triage for inbox messages, Gmail sync and daily invoice automation
"""

import logging
import os
from urllib.parse import urlparse

from arq.connections import RedisSettings
from arq.cron import cron

from .database import SessionLocal

# Register every model so SQLAlchemy can resolve relationships in worker processes
from . import models  # noqa: F401
from . import models_gmail  # noqa: F401
from . import models_invoice  # noqa: F401
from . import models_messaging  # noqa: F401
from . import models_square  # noqa: F401
from . import models_twilio  # noqa: F401
from . import models_visit  # noqa: F401

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """REDIS_URL (rediss:// for TLS) or the individual REDIS_* settings"""
    redis_url = os.getenv("REDIS_URL")

    if redis_url:
        parsed = urlparse(redis_url)
        return RedisSettings(
            host=parsed.hostname or "localhost",
            port=parsed.port or 6379,
            password=parsed.password,
            ssl=parsed.scheme == "rediss",
            conn_timeout=15,
            conn_retry_delay=1,
        )

    return RedisSettings(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        password=os.getenv("REDIS_PASSWORD"),
        ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        conn_timeout=15,
        conn_retry_delay=1,
    )


async def process_message_ai_task(ctx, message_id: int):
    """Run OpenAI triage for one inbox message"""
    from .messaging.ai_processor import process_message

    logger.info(f"🤖 ARQ Worker: AI triage for message {message_id} (job {ctx.get('job_id', 'unknown')})")
    db = SessionLocal()
    try:
        return process_message(db, message_id)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ AI triage failed for message {message_id}: {str(e)}")
        raise
    finally:
        db.close()


async def sync_gmail_accounts_task(ctx):
    """Pull unread mail from every connected Gmail account into the inbox"""
    from .messaging.gmail_worker import sync_gmail_to_inbox

    db = SessionLocal()
    try:
        summary = await sync_gmail_to_inbox(db)
        if summary["errors"]:
            logger.warning(f"⚠️ Gmail sync finished with {len(summary['errors'])} error(s)")
        return summary
    finally:
        db.close()


async def invoice_status_task(ctx):
    """Daily: sent/partial invoices past their due date become overdue"""
    from .services.status_automation import mark_overdue_invoices

    logger.info("Starting daily invoice status automation")
    db = SessionLocal()
    try:
        summary = mark_overdue_invoices(db)
        logger.info(f"Invoice status automation complete: {summary}")
        return summary
    except Exception as e:
        logger.error(f"❌ Invoice status automation failed: {str(e)}")
        raise
    finally:
        db.close()


class WorkerSettings:
    functions = [
        process_message_ai_task,
        sync_gmail_accounts_task,
        invoice_status_task,
    ]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "20"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "300"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))
    health_check_interval = 60
    max_tries = 3

    cron_jobs = [
        cron(sync_gmail_accounts_task, minute={0, 15, 30, 45}),
        cron(invoice_status_task, hour=0, minute=5),  # 12:05 AM UTC
    ]

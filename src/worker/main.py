import asyncio
import json
import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI

from src.common.config.settings import settings
from src.common.services.notify_service import send_telegram_message
from src.common.utils.logging_config import setup_logging
from src.worker.routers import scheduler as scheduler_router
from src.worker.scheduler_instance import scheduler
from src.worker import tasks

# 로깅 설정
setup_logging("worker.log")
logger = logging.getLogger(__name__)

VERIFY_TOKEN_CALLS_JOB_ID = 'verify_token_calls_job'


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting worker service...")

    # Add scheduler jobs
    scheduler.add_job(
        verify_token_calls_job, 'interval',
        minutes=settings.VERIFICATION_INTERVAL_MINUTES,
        id=VERIFY_TOKEN_CALLS_JOB_ID,
        name='토큰 콜 검증',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    # Start scheduler
    scheduler.start()
    logger.info("APScheduler started.")

    # Start notification listener
    redis_listener_task = asyncio.create_task(notification_listener())

    yield

    logger.info("Shutting down worker service...")
    scheduler.shutdown()
    redis_listener_task.cancel()

app = FastAPI(lifespan=lifespan)
app.include_router(scheduler_router.router, prefix="/api/v1")


# --- Scheduler Jobs ---

async def verify_token_calls_job(chat_id: int = None):
    """목표일이 지난 토큰 콜 검증 잡. 검증 잠금 때문에 같은 프로세스에서 겹쳐 실행되지 않습니다."""
    logger.info(f"[Trigger] 'verify_token_calls_task' for chat_id: {chat_id}")
    await tasks.verify_token_calls_task(chat_id)


async def notification_listener():
    """Redis 'notifications' 채널을 구독하고 메시지를 처리합니다."""
    logger.info("[Listener] Starting notification listener...")
    r = None
    try:
        logger.info(f"[Listener] Connecting to Redis at {settings.REDIS_HOST}...")
        r = redis.from_url(settings.redis_url, decode_responses=True)

        pubsub = r.pubsub()
        await pubsub.subscribe("notifications")
        logger.info(f"Subscribed to 'notifications' channel on {settings.REDIS_HOST}")

        while True:
            try:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message:
                    logger.info(f"[Listener] Received message: {message['data']}")
                    data = json.loads(message['data'])
                    chat_id = data.get('chat_id')
                    text = data.get('text')
                    if chat_id and text:
                        await send_telegram_message(chat_id, text)
                        logger.info(f"[Listener] Sent message to {chat_id}")
                await asyncio.sleep(0.1)
            except asyncio.CancelledError:
                logger.info("[Listener] Notification listener task cancelled.")
                break
            except Exception as e:
                logger.error(f"[Listener] Error processing message: {e}", exc_info=True)
                await asyncio.sleep(5)
    except asyncio.CancelledError:
        logger.info("[Listener] Main listener task cancelled.")
    except Exception as e:
        logger.error(f"[Listener] A critical error occurred: {e}", exc_info=True)
    finally:
        if r:
            await r.aclose()
            logger.info("[Listener] Redis connection closed.")

@app.get("/")
def read_root():
    return {"message": "Worker service is running"}

import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional
from src.worker.scheduler_instance import scheduler

router = APIRouter(prefix="/scheduler", tags=["scheduler"])
logger = logging.getLogger(__name__)

MANUAL_JOB_SUFFIX = "_manual"

class TriggerJobRequest(BaseModel):
    chat_id: Optional[int] = None

@router.get("/status")
async def get_scheduler_status():
    """Get the status of the scheduler and its jobs."""
    if not scheduler.running:
        return {"is_running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        logger.debug(f"Job: {job.id}, Name: {job.name}")
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        })
    return {"is_running": scheduler.running, "jobs": jobs}

@router.post("/trigger/{job_id}")
async def trigger_scheduler_job(job_id: str, request: TriggerJobRequest):
    """Trigger a specific scheduler job to run immediately."""
    job = scheduler.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job '{job_id}' not found.")

    try:
        # 정기 잡은 그대로 두고 1회성 실행을 등록 (chat_id 는 이번 실행에만 전달)
        next_run_time = getattr(job, 'next_run_time', None)
        tz = next_run_time.tzinfo if next_run_time else scheduler.timezone
        now = datetime.now(tz)
        run_kwargs = job.kwargs.copy()
        if request.chat_id:
            run_kwargs['chat_id'] = request.chat_id
        manual_job = scheduler.add_job(
            job.func,
            'date',
            run_date=now,
            args=job.args,
            kwargs=run_kwargs,
            id=f"{job.id}{MANUAL_JOB_SUFFIX}",
            name=f"{job.name} (수동 실행)",
            replace_existing=True,
        )
        return {
            "job_id": job.id,
            "manual_job_id": manual_job.id,
            "message": f"Job '{job.id}' triggered to run now.",
            "triggered_at": now.isoformat(),
        }
    except Exception as e:
        logger.error(f"Failed to trigger job '{job_id}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to trigger job '{job_id}': {str(e)}")

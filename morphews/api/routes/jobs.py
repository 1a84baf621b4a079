"""
ROTAS: JOBS
===========
Status do scheduler e execução manual de jobs (gestores).
"""

from fastapi import APIRouter, Depends, HTTPException, status

from morphews.api.dependencies import require_manager
from morphews.domain.entities import User
from morphews.infrastructure.scheduler import JOB_RUNNERS, get_scheduler_status, run_job_now

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get("/status")
async def jobs_status(user: User = Depends(require_manager)):
    return get_scheduler_status()


@router.post("/{job_id}/run")
async def run_job(job_id: str, user: User = Depends(require_manager)):
    if job_id not in JOB_RUNNERS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job '{job_id}' não encontrado")

    result = await run_job_now(job_id)
    if not result.get("success"):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.get("error"))
    return result

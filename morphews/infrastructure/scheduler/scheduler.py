"""
SCHEDULER DE JOBS PERIÓDICOS
=============================

Gerencia a execução de tarefas agendadas.

JOBS CONFIGURADOS:
- Expiração de pedidos: a cada 15 minutos
- Auto-close de conversas: a cada 5 minutos
- Mensagens agendadas: a cada minuto

(intervalos configuráveis via .env)

TECNOLOGIA: APScheduler (AsyncIOScheduler)
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from morphews.config import get_settings
from morphews.infrastructure.jobs import (
    run_auto_close_job,
    run_order_expiry_job,
    run_scheduled_messages_job,
)

logger = logging.getLogger(__name__)

# Instância global do scheduler
scheduler: Optional[AsyncIOScheduler] = None

JOB_RUNNERS: Dict[str, Callable[[], Awaitable[dict]]] = {
    "order_expiry": run_order_expiry_job,
    "auto_close_conversations": run_auto_close_job,
    "scheduled_messages": run_scheduled_messages_job,
}


def create_scheduler() -> AsyncIOScheduler:
    """
    Cria e configura o scheduler.

    CHAMADO POR: main.py no startup
    """
    global scheduler

    if scheduler is not None:
        logger.warning("⚠️ Scheduler já existe, retornando instância existente")
        return scheduler

    logger.info("🔧 Criando scheduler...")
    settings = get_settings()

    scheduler = AsyncIOScheduler(
        timezone=settings.timezone,
        job_defaults={
            "coalesce": True,  # Agrupa execuções perdidas
            "max_instances": 1,  # Só uma instância por vez
            "misfire_grace_time": 60 * 5,  # 5 minutos de tolerância
        }
    )

    # =========================================================================
    # REGISTRA OS JOBS
    # =========================================================================

    _register_job(
        scheduler, "order_expiry", "Expiração de Pedidos",
        minutes=settings.order_expiry_sweep_minutes,
    )
    _register_job(
        scheduler, "auto_close_conversations", "Auto-close de Conversas",
        minutes=settings.auto_close_interval_minutes,
    )
    _register_job(
        scheduler, "scheduled_messages", "Mensagens Agendadas",
        minutes=settings.scheduled_messages_interval_minutes,
    )

    logger.info("✅ Scheduler criado com sucesso")

    return scheduler


def _register_job(sched: AsyncIOScheduler, job_id: str, name: str, minutes: int):
    sched.add_job(
        JOB_RUNNERS[job_id],
        trigger=IntervalTrigger(minutes=minutes),
        id=job_id,
        name=name,
        replace_existing=True,
    )
    logger.info(f"📅 Job registrado: {name} (a cada {minutes} min)")


def start_scheduler():
    """
    Inicia o scheduler.

    CHAMADO POR: main.py no startup (depois de create_scheduler)
    """
    if scheduler is None:
        logger.error("❌ Scheduler não foi criado. Chame create_scheduler() primeiro.")
        return

    if scheduler.running:
        logger.warning("⚠️ Scheduler já está rodando")
        return

    scheduler.start()
    logger.info("🚀 Scheduler iniciado!")

    jobs = scheduler.get_jobs()
    logger.info(f"📋 Jobs ativos: {len(jobs)}")
    for job in jobs:
        logger.info(f"   - {job.name} (próxima execução: {job.next_run_time})")


def stop_scheduler():
    """
    Para o scheduler e descarta a instância.

    CHAMADO POR: main.py no shutdown
    """
    global scheduler

    if scheduler is None:
        return

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler parado")

    scheduler = None


def get_scheduler_status() -> dict:
    """
    Retorna status do scheduler.

    Útil para endpoint de health check.
    """
    if scheduler is None:
        return {
            "running": False,
            "jobs": [],
            "error": "Scheduler não inicializado",
        }

    jobs_info = []
    for job in scheduler.get_jobs():
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(getattr(job, "next_run_time", None) or "") or None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs_info,
    }


async def run_job_now(job_id: str) -> dict:
    """
    Executa um job imediatamente (fora do agendamento).

    Útil para testes ou execução manual pelo admin.
    """
    runner = JOB_RUNNERS.get(job_id)
    if runner is None:
        return {"success": False, "error": f"Job '{job_id}' não encontrado"}

    try:
        result = await runner()
    except Exception as e:
        logger.error(f"❌ Erro ao executar job {job_id}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}

    if isinstance(result, dict) and "error" in result:
        return {"success": False, "error": result["error"]}
    return {"success": True, "result": result}

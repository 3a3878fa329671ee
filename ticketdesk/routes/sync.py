"""
Synchronization API Routes

Provides endpoints for reconciling linked tickets with Freshdesk:
- Batch trigger (runs sync_all in the background)
- Sync status monitoring
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional, List

from ticketdesk.exceptions import IntegrationDisabled
from ticketdesk.models.schemas import utcnow
from ticketdesk.routes.dependencies import get_reconciliation_engine
from ticketdesk.utils.logger import get_logger

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])
logger = get_logger(__name__)


class SyncTriggerResponse(BaseModel):
    """Sync trigger acknowledgement"""
    accepted: bool
    requested_at: str


class SyncStatus(BaseModel):
    """Current sync status"""
    enabled: bool
    sync_in_progress: bool = False
    last_sync_started: Optional[str] = None
    last_sync_finished: Optional[str] = None
    last_synced: int = 0
    last_failed: int = 0
    last_errors: List[str] = []


# Global sync state
sync_state = {
    "ticket_sync_in_progress": False,
    "last_result": None
}


async def sync_tickets_task(engine) -> None:
    """
    Background task for ticket synchronization

    Releases the in-progress flag claimed by the trigger endpoint.

    Args:
        engine: ReconciliationEngine to run
    """
    try:
        sync_state["last_result"] = await engine.sync_all()
    except IntegrationDisabled:
        logger.info("Freshdesk integration not enabled, skipping sync")
    except Exception as e:
        logger.error(f"Ticket sync failed: {str(e)}", exc_info=True)
    finally:
        sync_state["ticket_sync_in_progress"] = False


@router.post("/tickets", response_model=SyncTriggerResponse, status_code=202)
async def sync_tickets(
    background_tasks: BackgroundTasks,
    engine=Depends(get_reconciliation_engine),
):
    """
    Reconcile every linked, non-closed ticket with Freshdesk

    - Pulls ticket fields (Freshdesk is authoritative)
    - Imports new Freshdesk conversations as comments

    Returns:
        Acknowledgement; the batch runs in the background
    """
    if not engine.enabled:
        raise HTTPException(status_code=503, detail="Freshdesk integration not enabled")

    if sync_state["ticket_sync_in_progress"]:
        raise HTTPException(
            status_code=409,
            detail="Ticket sync already in progress"
        )

    # Claimed before scheduling so a second trigger sees the batch as running
    sync_state["ticket_sync_in_progress"] = True
    background_tasks.add_task(sync_tickets_task, engine)

    return SyncTriggerResponse(
        accepted=True,
        requested_at=utcnow().isoformat()
    )


@router.get("/status", response_model=SyncStatus)
async def get_sync_status(engine=Depends(get_reconciliation_engine)):
    """
    Get current synchronization status

    Returns:
        - Whether the integration is configured
        - Outcome of the last batch run by this process
        - Current sync operation status
    """
    status = SyncStatus(
        enabled=engine.enabled,
        sync_in_progress=sync_state["ticket_sync_in_progress"]
    )

    last = sync_state["last_result"]
    if last is not None:
        status.last_sync_started = last.started_at.isoformat()
        status.last_sync_finished = last.finished_at.isoformat() if last.finished_at else None
        status.last_synced = last.synced
        status.last_failed = last.failed
        status.last_errors = last.errors

    return status

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from src.schemas.api.detection import ApiResponse, DetectionSettingsUpdate, DraftRequest
from src.services.transaction_detection import (
    TransactionDetectionStore,
    build_transaction_draft,
    create_detection_store,
    get_monitored_apps,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/detection", tags=["transaction-detection"])


@lru_cache(maxsize=1)
def get_detection_store() -> TransactionDetectionStore:
    return create_detection_store()


@router.get("/state", response_model=ApiResponse)
async def get_state(store: TransactionDetectionStore = Depends(get_detection_store)):
    """Current pending queue, settings and listener flags."""
    return ApiResponse(data=store.snapshot().model_dump(mode="json"))


@router.get("/pending", response_model=ApiResponse)
async def get_pending(store: TransactionDetectionStore = Depends(get_detection_store)):
    pending = [t.model_dump(mode="json") for t in store.pending_transactions]
    return ApiResponse(data=pending, message=f"Found {len(pending)} pending transactions")


@router.delete("/pending", response_model=ApiResponse)
async def clear_pending(store: TransactionDetectionStore = Depends(get_detection_store)):
    store.clear_pending()
    return ApiResponse(data=[], message="Pending transactions cleared")


@router.get("/monitored-apps", response_model=ApiResponse)
async def list_monitored_apps():
    return ApiResponse(data=[app.model_dump() for app in get_monitored_apps()])


@router.post("/transactions/{transaction_id}/process", response_model=ApiResponse)
async def process_transaction(
    transaction_id: str,
    store: TransactionDetectionStore = Depends(get_detection_store),
):
    changed = store.mark_as_processed(transaction_id)
    return ApiResponse(
        data={"id": transaction_id, "changed": changed},
        message="Transaction marked as processed" if changed else "Transaction already resolved",
    )


@router.post("/transactions/{transaction_id}/dismiss", response_model=ApiResponse)
async def dismiss_transaction(
    transaction_id: str,
    store: TransactionDetectionStore = Depends(get_detection_store),
):
    changed = store.dismiss_transaction(transaction_id)
    return ApiResponse(
        data={"id": transaction_id, "changed": changed},
        message="Transaction dismissed" if changed else "Transaction already resolved",
    )


@router.post("/transactions/{transaction_id}/draft", response_model=ApiResponse)
async def draft_transaction(
    transaction_id: str,
    request: Optional[DraftRequest] = None,
    store: TransactionDetectionStore = Depends(get_detection_store),
):
    """Pre-filled finance entry for a pending detection."""
    detected = store.get_pending(transaction_id)
    if detected is None:
        raise HTTPException(status_code=404, detail=f"No pending transaction {transaction_id}")

    accounts = request.accounts if request else []
    draft = build_transaction_draft(detected, accounts)
    return ApiResponse(data=draft.model_dump(mode="json"))


@router.post("/permissions/check", response_model=ApiResponse)
async def check_permissions(store: TransactionDetectionStore = Depends(get_detection_store)):
    settings = await store.check_permissions()
    return ApiResponse(data=settings.model_dump())


@router.post("/permissions/notifications", response_model=ApiResponse)
async def request_notification_access(store: TransactionDetectionStore = Depends(get_detection_store)):
    granted = await store.request_notification_access()
    return ApiResponse(data={"granted": granted})


@router.post("/permissions/sms", response_model=ApiResponse)
async def request_sms_access(store: TransactionDetectionStore = Depends(get_detection_store)):
    granted = await store.request_sms_access()
    return ApiResponse(data={"granted": granted})


@router.post("/listening/start", response_model=ApiResponse)
async def start_listening(store: TransactionDetectionStore = Depends(get_detection_store)):
    await store.start_listening()
    return ApiResponse(data={"is_listening": store.is_listening, "is_sms_watching": store.is_sms_watching})


@router.post("/listening/stop", response_model=ApiResponse)
async def stop_listening(store: TransactionDetectionStore = Depends(get_detection_store)):
    store.stop_listening()
    return ApiResponse(data={"is_listening": False, "is_sms_watching": False})


@router.post("/sms/scan", response_model=ApiResponse)
async def scan_recent_sms(store: TransactionDetectionStore = Depends(get_detection_store)):
    transactions = await store.scan_recent_sms()
    return ApiResponse(
        data=[t.model_dump(mode="json") for t in transactions],
        message=f"Found {len(transactions)} transactions in the last {store.scan_hours_back:g} hours",
    )


@router.patch("/settings", response_model=ApiResponse)
async def update_settings(
    update: DetectionSettingsUpdate,
    store: TransactionDetectionStore = Depends(get_detection_store),
):
    if update.notification_listener_enabled is not None:
        await store.toggle_notification_listener(update.notification_listener_enabled)
    if update.sms_reader_enabled is not None:
        await store.toggle_sms_reader(update.sms_reader_enabled)
    if update.auto_show_prompt is not None:
        store.toggle_auto_show_prompt(update.auto_show_prompt)

    logger.info(f"Detection settings updated: {update.model_dump(exclude_none=True)}")
    return ApiResponse(data=store.settings.model_dump())

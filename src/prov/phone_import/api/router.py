"""FastAPI router for phone import endpoints."""

import logging

import asyncpg
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from ..config import DomainPolicies, ImportConfig
from ..domain.exceptions import BatchNotFoundError, MalformedFileError, StructuralError
from ..domain.ports import IBatchStore, IDeviceRegistry, IModelCatalog, IRowExtractor
from ..domain.stats import aggregate_stats
from ..use_cases import ClassifyUploadUseCase, CommitRowsUseCase, KeyedLocks
from .dependencies import (
    get_batch_store,
    get_catalog,
    get_commit_locks,
    get_config,
    get_db_pool,
    get_extractor,
    get_policies,
    get_registry,
)
from .error_sanitizer import sanitize_error_message
from .schemas import (
    BatchResponse,
    BatchStatsDTO,
    ClassifiedRowDTO,
    CommitRequest,
    CommitResponse,
    DeviceModelDTO,
    ImportResultDTO,
    ModelsResponse,
    StructuralErrorResponse,
    UploadResponse,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")

router = APIRouter(prefix="/api/phone-import", tags=["Phone Import"])


def _structural_error_response(error: StructuralError) -> JSONResponse:
    body = StructuralErrorResponse(
        code=error.code.value,
        message=sanitize_error_message(error.message),
        missing_columns=error.details.get("missing_columns", []),
    )
    return JSONResponse(status_code=400, content=body.model_dump())


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": StructuralErrorResponse}},
)
async def upload_spreadsheet(
    file: UploadFile = File(...),
    domain: str = Form(...),
    extractor: IRowExtractor = Depends(get_extractor),
    catalog: IModelCatalog = Depends(get_catalog),
    registry: IDeviceRegistry = Depends(get_registry),
    batch_store: IBatchStore = Depends(get_batch_store),
    policies: DomainPolicies = Depends(get_policies),
    config: ImportConfig = Depends(get_config),
):
    """Upload a phone spreadsheet and classify every row.

    The file should have columns:
    - MAC, Number, Vendor, Model (required)
    - User, Lines, Description (optional)

    Returns each row as new, conflict or error, plus batch statistics.
    Nothing is written to the registry.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    if not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="File must be an Excel (.xlsx, .xls) or CSV (.csv) file",
        )

    if not domain.strip():
        raise HTTPException(status_code=400, detail="Domain is required")

    max_bytes = config.max_upload_size_bytes
    too_large = f"File too large. Maximum size is {config.max_upload_size_mb} MB"

    # Check content-length header if available (early rejection)
    if file.size and file.size > max_bytes:
        raise HTTPException(status_code=413, detail=too_large)

    content = await file.read()
    if len(content) > max_bytes:
        raise HTTPException(status_code=413, detail=too_large)

    use_case = ClassifyUploadUseCase(
        extractor=extractor,
        catalog=catalog,
        registry=registry,
        batch_store=batch_store,
        policies=policies,
        max_workers=config.max_workers,
    )

    try:
        if not content:
            raise MalformedFileError("File is empty")
        result = await use_case.execute(content, domain.strip(), filename=file.filename)
    except StructuralError as e:
        logger.error(f"Rejected upload {file.filename}: {e.message}")
        return _structural_error_response(e)

    return UploadResponse(
        batch_id=result.batch_id,
        domain=result.domain,
        snapshot_token=result.snapshot_token,
        rows=[ClassifiedRowDTO.from_entity(r) for r in result.rows],
        stats=BatchStatsDTO.from_entity(result.stats),
    )


@router.post(
    "/batches/{batch_id}/commit",
    response_model=CommitResponse,
    responses={207: {"model": CommitResponse}},
)
async def commit_batch(
    batch_id: str,
    body: CommitRequest,
    request: Request,
    registry: IDeviceRegistry = Depends(get_registry),
    batch_store: IBatchStore = Depends(get_batch_store),
    locks: KeyedLocks = Depends(get_commit_locks),
    config: ImportConfig = Depends(get_config),
):
    """Commit operator decisions for a classified batch.

    Each decision is one of:
    - import: create a device for a ``new`` row
    - overwrite: replace the colliding device with a ``conflict`` row
    - skip: leave the registry untouched

    Rows are committed independently. Returns 200 if every submitted row
    succeeded, 207 otherwise.
    """
    use_case = CommitRowsUseCase(
        registry=registry,
        batch_store=batch_store,
        max_concurrent=config.commit_concurrency,
        locks=locks,
    )

    try:
        result = await use_case.execute(
            batch_id,
            [(d.row_number, d.action) for d in body.decisions],
            should_stop=request.is_disconnected,
        )
    except BatchNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    response = CommitResponse(
        batch_id=result.batch_id,
        results=[ImportResultDTO.from_entity(r) for r in result.results],
        stats=BatchStatsDTO.from_entity(result.stats),
        incomplete=result.incomplete,
    )
    status_code = 207 if result.has_failures or result.incomplete else 200
    return JSONResponse(status_code=status_code, content=response.model_dump())


@router.get("/batches/{batch_id}", response_model=BatchResponse)
async def get_batch(
    batch_id: str,
    batch_store: IBatchStore = Depends(get_batch_store),
):
    """Get the current rows, commit results and statistics of a batch."""
    batch = await batch_store.get(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail=BatchNotFoundError(batch_id).message)

    return BatchResponse(
        batch_id=batch.batch_id,
        domain=batch.domain,
        filename=batch.filename,
        snapshot_token=batch.snapshot_token,
        rows=[ClassifiedRowDTO.from_entity(r) for r in batch.rows],
        results=[
            ImportResultDTO.from_entity(batch.results[n]) for n in sorted(batch.results)
        ],
        stats=BatchStatsDTO.from_entity(aggregate_stats(batch.rows, batch.results)),
    )


@router.get("/models", response_model=ModelsResponse)
async def list_models(catalog: IModelCatalog = Depends(get_catalog)):
    """List the phone models that can be imported."""
    models = [DeviceModelDTO.from_entity(m) for m in catalog.list_models()]
    return ModelsResponse(models=models, total=len(models))


@router.get("/health")
async def health_check():
    """Health check for the phone import service."""
    try:
        pool = get_db_pool()
        await pool.fetchval("SELECT 1")
        database = "connected"
    except RuntimeError:
        database = "not_initialized"
    except (asyncpg.PostgresError, OSError) as e:
        logger.error(f"Registry health check failed: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "service": "phone-import",
        "database": database,
    }

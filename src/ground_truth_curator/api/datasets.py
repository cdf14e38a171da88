"""Dataset curation API endpoints."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status

from ground_truth_curator.api.schemas import (
    AddRecordRequest,
    ApproveRequest,
    DatasetResponse,
    EditRecordRequest,
    ImportRequest,
    ImportResponse,
    RecordResponse,
    RecordsResponse,
    StatsResponse,
)
from ground_truth_curator.auth.gate import verify_access
from ground_truth_curator.codec import MEDIA_TYPES, ExportFormat
from ground_truth_curator.datasets.collection import ApprovalFilter, SortDirection
from ground_truth_curator.datasets.session import ReviewSession, open_session
from ground_truth_curator.exceptions import (
    CuratorError,
    DatasetNameConflictError,
    DatasetNotFoundError,
    DecodeError,
    ImportBlockedError,
    RecordValidationError,
    StoreError,
    UnsupportedFormatError,
)
from ground_truth_curator.records.models import Record, RecordKind

logger = logging.getLogger(__name__)


def require_access(
    kind: RecordKind,
    x_access_password: str | None = Header(default=None),
) -> None:
    """Document routes need the workspace password in ``X-Access-Password``."""
    if kind == RecordKind.DOCUMENT and not verify_access(x_access_password):
        raise HTTPException(status_code=401, detail="Invalid or missing access password")


router = APIRouter(
    prefix="/api/v1/datasets",
    tags=["datasets"],
    dependencies=[Depends(require_access)],
)


def get_session(kind: RecordKind) -> ReviewSession:
    """Open a review session on the persisted dataset of ``kind``."""
    return open_session(kind)


# Most specific first: isinstance checks walk this in order
_STATUS_CODES: list[tuple[type[Exception], int]] = [
    (ImportBlockedError, status.HTTP_409_CONFLICT),
    (DatasetNameConflictError, status.HTTP_409_CONFLICT),
    (DecodeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RecordValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnsupportedFormatError, status.HTTP_400_BAD_REQUEST),
    (DatasetNotFoundError, status.HTTP_404_NOT_FOUND),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ValueError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


def _http_error(error: Exception) -> HTTPException:
    for exc_type, code in _STATUS_CODES:
        if isinstance(error, exc_type):
            if code >= 500:
                logger.error(f"Dataset operation failed: {error}")
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _record_json(record: Record) -> dict:
    return record.model_dump(mode="json")


def _not_found(identity: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Record not found: {identity}")


@router.get("/{kind}", response_model=DatasetResponse)
def get_dataset(session: ReviewSession = Depends(get_session)) -> DatasetResponse:
    """Return the persisted dataset envelope, or null when none exists."""
    if not session.is_persisted:
        return DatasetResponse(dataset=None)
    envelope = session.reconciler.load()
    return DatasetResponse(dataset=envelope.model_dump(mode="json") if envelope else None)


@router.delete("/{kind}")
def clear_dataset(session: ReviewSession = Depends(get_session)) -> dict[str, str]:
    """Delete the persisted dataset."""
    try:
        session.clear()
    except CuratorError as e:
        raise _http_error(e) from e
    return {"status": "cleared"}


@router.post("/{kind}/import", response_model=ImportResponse)
def import_dataset(
    request: ImportRequest, session: ReviewSession = Depends(get_session)
) -> ImportResponse:
    """Import a JSON, JSONL or CSV file into an empty dataset.

    Refused with 409 while the dataset holds records; a malformed file is
    rejected with 422 and nothing is imported.
    """
    try:
        count = session.import_text(request.content, request.format, request.username)
    except (CuratorError, ValueError) as e:
        raise _http_error(e) from e
    return ImportResponse(imported=count, dataset_name=session.dataset_name)


@router.get("/{kind}/records", response_model=RecordsResponse)
def list_records(
    search: str = Query(default="", description="Case-insensitive substring"),
    status_filter: ApprovalFilter = Query(default=ApprovalFilter.ALL, alias="status"),
    sort: SortDirection = Query(default=SortDirection.NONE),
    session: ReviewSession = Depends(get_session),
) -> RecordsResponse:
    """Filtered, optionally sorted view of the dataset."""
    records = session.view(search, status_filter, sort)
    return RecordsResponse(
        records=[_record_json(r) for r in records],
        total=len(records),
        dataset_total=len(session),
    )


@router.post("/{kind}/records", response_model=RecordResponse, status_code=201)
def add_record(
    request: AddRecordRequest, session: ReviewSession = Depends(get_session)
) -> RecordResponse:
    """Add a record. Documents may be placed before or after a target row."""
    try:
        if request.username and not session.username:
            session.set_username(request.username)
        if not session.username:
            raise HTTPException(status_code=422, detail="Username is required to create a dataset")
        record = session.add(request.record, request.position, request.target_index)
    except (CuratorError, ValueError) as e:
        raise _http_error(e) from e
    return RecordResponse(record=_record_json(record))


@router.put("/{kind}/records/{identity}", response_model=RecordResponse)
def edit_record(
    identity: str, request: EditRecordRequest, session: ReviewSession = Depends(get_session)
) -> RecordResponse:
    """Replace a record's content, keeping its identity and approval."""
    try:
        changed = session.edit(identity, request.record)
    except CuratorError as e:
        raise _http_error(e) from e
    if not changed:
        raise _not_found(identity)
    return RecordResponse(record=_record_json(session.get(identity)))


@router.delete("/{kind}/records/{identity}")
def delete_record(identity: str, session: ReviewSession = Depends(get_session)) -> dict[str, str]:
    """Delete a record by identity."""
    try:
        changed = session.delete(identity)
    except CuratorError as e:
        raise _http_error(e) from e
    if not changed:
        raise _not_found(identity)
    return {"status": "deleted", "identity": identity}


@router.post("/{kind}/records/{identity}/approve", response_model=RecordResponse)
def approve_record(
    identity: str,
    request: ApproveRequest | None = None,
    session: ReviewSession = Depends(get_session),
) -> RecordResponse:
    """Approve a record, stamping the approver and the current time."""
    try:
        changed = session.approve(identity, request.approver if request else None)
    except CuratorError as e:
        raise _http_error(e) from e
    if not changed:
        raise _not_found(identity)
    return RecordResponse(record=_record_json(session.get(identity)))


@router.post("/{kind}/records/{identity}/revoke", response_model=RecordResponse)
def revoke_record(identity: str, session: ReviewSession = Depends(get_session)) -> RecordResponse:
    """Withdraw a record's approval."""
    try:
        changed = session.revoke(identity)
    except CuratorError as e:
        raise _http_error(e) from e
    if not changed:
        raise _not_found(identity)
    return RecordResponse(record=_record_json(session.get(identity)))


@router.get("/{kind}/stats", response_model=StatsResponse)
def dataset_stats(session: ReviewSession = Depends(get_session)) -> StatsResponse:
    """Totals and approval rate."""
    return StatsResponse(**asdict(session.stats()))


@router.get("/{kind}/export")
def export_dataset(
    format: ExportFormat = Query(default=ExportFormat.JSON),
    session: ReviewSession = Depends(get_session),
) -> Response:
    """Download the dataset as JSON, JSONL or CSV (entries only)."""
    try:
        filename, content = session.export(format)
    except CuratorError as e:
        raise _http_error(e) from e
    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

"""
Statement import: upload a file and get the classified rows back, then
commit the reviewed selection.
"""
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder

from bank_recon.api.schemas import CommitRequest
from bank_recon.api.state import get_session_state
from bank_recon.common.activity_log import log_alias, log_commit, log_import
from bank_recon.common.logging_config import get_logger
from bank_recon.core.commit import apply_alias_writes, plan_commit

logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def import_statement(request: Request, file: UploadFile = File(...)):
    """
    Parse and classify one statement.

    UnsupportedFormatError propagates to the app-level handler (422).
    """
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file.")

    state = get_session_state(request)
    logger.info(f"Statement upload: {file.filename}", size=len(content))

    result = request.app.state.pipeline.process(
        file.filename or '',
        content,
        clients=state.clients,
        existing=state.transactions,
        aliases=request.app.state.alias_store,
        company=state.company,
    )
    state.last_result = result

    summary = jsonable_encoder(result.summary)
    log_import(result.file_name, result.format.value, summary,
               user=getattr(request.state, "session_id", "anonymous"))
    return jsonable_encoder(result)


@router.post("/commit")
def commit_import(request: Request, body: CommitRequest):
    """Plan the writes for the reviewed rows and store the learned aliases."""
    state = get_session_state(request)
    if state.last_result is None:
        raise HTTPException(status_code=404, detail="No import to commit in this session.")

    size = len(state.last_result.transactions)
    out_of_range = [i for i in list(body.selected or []) + list(body.overrides) if not 0 <= i < size]
    if out_of_range:
        raise HTTPException(status_code=422, detail=f"Row index out of range: {sorted(set(out_of_range))}")

    plan = plan_commit(
        state.last_result,
        selected=body.selected,
        overrides=body.overrides,
        clients=state.clients,
        include_duplicates=body.include_duplicates,
    )
    session_id = getattr(request.state, "session_id", "anonymous")
    stored = apply_alias_writes(request.app.state.alias_store, plan.alias_writes)
    for alias in stored:
        log_alias(alias.bank_name, alias.bank_bin, alias.client_id, user=session_id)

    log_commit(state.last_result.file_name, len(plan.entries), len(plan.reconciliation_updates),
               plan.skipped, user=session_id)
    return {"plan": jsonable_encoder(plan), "aliases_stored": len(stored)}

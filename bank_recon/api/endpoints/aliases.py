from typing import List

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder

from bank_recon.api.schemas import AliasIn
from bank_recon.api.state import get_session_state
from bank_recon.common.activity_log import log_alias
from bank_recon.common.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
def list_aliases(request: Request):
    return jsonable_encoder(request.app.state.alias_store.all())


@router.put("")
def put_aliases(request: Request, aliases: List[AliasIn]):
    """Upsert confirmed aliases; the last confirmation for a key wins."""
    store = request.app.state.alias_store
    session_id = getattr(request.state, "session_id", "anonymous")
    known = {c.id for c in get_session_state(request).clients}

    stored = []
    for alias in aliases:
        if known and alias.client_id not in known:
            logger.warning("Alias for a client not in the session.", client_id=alias.client_id)
        stored.append(store.put(alias.bank_name, alias.bank_bin, alias.client_id))
        log_alias(alias.bank_name, alias.bank_bin, alias.client_id, user=session_id)
    return jsonable_encoder(stored)
